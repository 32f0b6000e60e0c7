"""Builds the generation prompt for a place description."""

from typing import List

from app.models.enrichment import AiContext, Prompt

SYSTEM_INSTRUCTIONS = " ".join([
    "You are a local with great taste writing place descriptions for a map app.",
    "Write in natural, warm, grounded language.",
    "No emojis. No marketing tone. No tourist clichés.",
    "Do not repeat obvious facts like the full address.",
    "Do not use lists or bullet points.",
    "3–5 sentences. Vibe & atmosphere first.",
    "No links or URLs.",
])

USER_HEADER = [
    "Write a short atmospheric description of this place as a local would recommend it.",
    "Focus on vibe, emotions, and why it feels special.",
    "Avoid tourist language, lists, and facts repetition.",
]


def _facts(ctx: AiContext) -> List[str]:
    facts = []

    address = (ctx.formatted_address or "").strip()
    if address:
        facts.append(f"Address: {address}")

    types = ", ".join(t for t in ctx.types[:6] if t)
    if types:
        facts.append(f"Types: {types}")

    if ctx.rating is not None:
        line = f"Rating: {ctx.rating:.1f}"
        if ctx.user_ratings_total is not None:
            line += f" ({ctx.user_ratings_total} ratings)"
        facts.append(line)

    editorial = (ctx.editorial_summary or "").strip()
    if editorial:
        facts.append(f"Editorial summary: {editorial}")

    reviews = [r for r in ctx.reviews if r][:3]
    if reviews:
        facts.append("Review snippets:\n" + "\n".join(f"- {r}" for r in reviews))

    return facts


def build_prompt(ctx: AiContext) -> Prompt:
    """
    Turn place context into (system, user) instructions.

    Pure and deterministic. Facts are listed only when present, so the model
    never sees empty labels.
    """
    name = (ctx.name or "").strip() or "this place"
    lines = USER_HEADER + ["", f"Place name: {name}"]

    facts = _facts(ctx)
    if facts:
        lines += ["", "Google data:"] + facts

    return Prompt(system=SYSTEM_INSTRUCTIONS, user="\n".join(lines).strip())
