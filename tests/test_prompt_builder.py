import pytest

from app.enrichment.prompt_builder import build_prompt
from app.models.enrichment import AiContext

FULL_CONTEXT = AiContext(
    name="Sunset Deck",
    types=["bar", "restaurant"],
    formatted_address="1 Ocean Dr, Key Largo, FL",
    rating=4.56,
    user_ratings_total=812,
    editorial_summary="Waterfront deck bar known for sunsets.",
    reviews=["Best sunset in town.", "Cold drinks, friendly staff."],
)


def test_full_context_user_message():
    prompt = build_prompt(FULL_CONTEXT)

    assert prompt.user == "\n".join([
        "Write a short atmospheric description of this place as a local would recommend it.",
        "Focus on vibe, emotions, and why it feels special.",
        "Avoid tourist language, lists, and facts repetition.",
        "",
        "Place name: Sunset Deck",
        "",
        "Google data:",
        "Address: 1 Ocean Dr, Key Largo, FL",
        "Types: bar, restaurant",
        "Rating: 4.6 (812 ratings)",
        "Editorial summary: Waterfront deck bar known for sunsets.",
        "Review snippets:",
        "- Best sunset in town.",
        "- Cold drinks, friendly staff.",
    ])


def test_system_policy():
    system = build_prompt(AiContext()).system

    assert "No emojis" in system
    assert "No marketing tone" in system
    assert "Do not use lists or bullet points" in system
    assert "3–5 sentences" in system
    assert "No links or URLs" in system


def test_empty_context_has_no_data_block():
    prompt = build_prompt(AiContext())

    assert prompt.user.endswith("Place name: this place")
    assert "Google data:" not in prompt.user


def test_rating_without_count():
    prompt = build_prompt(AiContext(name="X", rating=4))

    assert "Rating: 4.0" in prompt.user
    assert "ratings)" not in prompt.user


def test_count_without_rating_is_omitted():
    prompt = build_prompt(AiContext(name="X", user_ratings_total=10))

    assert "Rating" not in prompt.user
    assert "Google data:" not in prompt.user


@pytest.mark.parametrize(
    "context",
    [
        AiContext(name="A", formatted_address="  "),
        AiContext(name="A", types=["cafe"]),
        AiContext(name="A", editorial_summary=""),
        AiContext(name="A", reviews=["Nice."]),
        AiContext(name="  ", rating=3.2, user_ratings_total=0),
        FULL_CONTEXT,
    ],
)
def test_no_empty_labelled_lines(context):
    for line in build_prompt(context).user.splitlines():
        if line.endswith(":"):
            assert line in ("Google data:", "Review snippets:")
        assert not line.endswith(": ")


def test_deterministic():
    assert build_prompt(FULL_CONTEXT) == build_prompt(FULL_CONTEXT.model_copy())
