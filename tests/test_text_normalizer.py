import pytest

from app.enrichment.text_normalizer import normalize, split_sentences

SAMPLES = [
    "",
    "Just one line",
    "Cozy spot. Great coffee!",
    "One. Two. Three. Four. Five. Six. Seven.",
    "Visit https://example.com now.   Or www.example.org!  Really?\n\nYes 🎉 indeed.",
    "Trailing emoji 😀😀 and a link http://x.y/z?q=1 . Next sentence here. Another one! Last?",
    "WWW.SHOUTY.COM is gone. So is HTTPS://LOUD.EXAMPLE. ok.",
    "ww😀w.sneaky.example should not survive. Second. Third.",
    "Find it at www. the pier. Menu lives at http:// somewhere. Ask at https://.",
    "Time flies here ⌚. Doors at nine ⏰ sharp. Turn left ↩ then right ➡️. Done ▶.",
]


def test_keeps_both_sentences_when_only_two():
    assert normalize("Cozy spot. Great coffee!") == "Cozy spot. Great coffee!"


def test_keeps_first_five_of_seven_sentences():
    result = normalize("One. Two. Three. Four. Five. Six. Seven.")

    assert result == "One. Two. Three. Four. Five."
    assert len(split_sentences(result)) == 5


def test_strips_urls_and_emoji():
    result = normalize("Sunsets here are unreal 🌅. Menu at https://example.com/menu. Or www.example.org. Go.")

    assert "🌅" not in result
    assert "http" not in result
    assert "www." not in result
    assert result.startswith("Sunsets here are unreal")
    assert result.endswith("Go.")


def test_collapses_whitespace():
    assert normalize("  Quiet   corner.\n\nGood\tlight.  ") == "Quiet corner. Good light."


def test_question_and_exclamation_are_boundaries():
    text = "Is it loud? Sometimes! Mostly calm. Always friendly. Never rushed. Open late."
    assert normalize(text) == "Is it loud? Sometimes! Mostly calm. Always friendly. Never rushed."


@pytest.mark.parametrize("raw", SAMPLES)
def test_idempotent(raw):
    once = normalize(raw)
    assert normalize(once) == once


@pytest.mark.parametrize("raw", SAMPLES)
def test_output_has_no_links_or_emoji(raw):
    result = normalize(raw).lower()
    for forbidden in ("http://", "https://", "www.", "😀", "🎉", "🌅", "⌚", "⏰", "↩", "▶"):
        assert forbidden not in result


def test_bare_link_prefixes_are_removed():
    result = normalize("Find it at www. the pier. Menu at http:// somewhere. Book at HTTPS:// now.")

    assert result == "Find it at the pier. Menu at somewhere. Book at now."


def test_misc_technical_symbols_are_removed():
    assert normalize("Time flies here ⌚. Doors at nine ⏰ sharp.") == "Time flies here . Doors at nine sharp."
