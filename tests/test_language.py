import pytest

from yamifit_chatbot.utils.language import detect_arabic


@pytest.mark.parametrize(
    "text",
    [
        "ما اسمك؟",
        "أريد خطة وجبات صحية",
        "ابغى meal plan",  # 4 of 12 visible code points are Arabic
        "ݐݑݒ",  # Arabic Supplement
        "ࢠࢡ ab",  # Arabic Extended-A
    ],
)
def test_detects_arabic(text):
    assert detect_arabic(text) is True


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   \n\t ",
        "Hi, what is your name?",
        "Suggest a snack",
        "Bonjour, je veux maigrir",
        "abcdefg ما",  # 2 of 9 visible code points
    ],
)
def test_detects_non_arabic(text):
    assert detect_arabic(text) is False


def test_ratio_threshold_is_strictly_greater_than_thirty_percent():
    # 3 of 10 non-whitespace code points is exactly 30% and does not count
    assert detect_arabic("ماس abcdefg") is False
    # 4 of 10 is above the threshold
    assert detect_arabic("ماسم abcdef") is True


def test_whitespace_is_ignored_in_the_denominator():
    assert detect_arabic("م     a") is True
    assert detect_arabic("م a b") is True
    assert detect_arabic("م a b c") is False


def test_detection_is_deterministic():
    text = "مرحبا hello"
    assert all(detect_arabic(text) == detect_arabic(text) for _ in range(5))
