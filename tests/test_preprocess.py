import pytest

from preprocess import PAGE_BREAK, TextPreprocessor, find_amounts, join_pages


@pytest.fixture
def preprocessor():
    return TextPreprocessor()


class TestNormalize:
    @pytest.mark.parametrize("raw,expected", [
        ("Balance ||| 500", "Balance 500"),
        ("Amount l00.00", "Amount 100.00"),
        ("O5/01/2024 ATM", "05/01/2024 ATM"),
        ("I5 Mar 2024", "15 Mar 2024"),
        ("Hello    World", "Hello World"),
        ("IOU 5", "IOU 5"),
    ])
    def test_ocr_cleanup(self, preprocessor, raw, expected):
        assert preprocessor.normalize(raw) == expected

    def test_repeated_substitution_reaches_fixpoint(self, preprocessor):
        # The first pass only repairs the second "l"
        assert preprocessor.normalize("ll5") == "115"

    def test_long_letter_run_fully_repaired(self, preprocessor):
        once = preprocessor.normalize("Account No: " + "l" * 12 + "5")
        assert once == "Account No: " + "1" * 12 + "5"
        assert preprocessor.normalize(once) == once

    @pytest.mark.parametrize("raw", [
        "ll5 lll9 ||| O0O1",
        "Date  ||  Narration\n  01/01/2024   SALARY   55,000.00",
        "",
    ])
    def test_idempotent(self, preprocessor, raw):
        once = preprocessor.normalize(raw)
        assert preprocessor.normalize(once) == once

    def test_line_breaks_preserved(self, preprocessor):
        cleaned = preprocessor.normalize("a   b\n    c")
        assert preprocessor.get_lines(cleaned) == ["a b", "c"]

    def test_none_is_empty(self, preprocessor):
        assert preprocessor.normalize(None) == ""


class TestGetLines:
    def test_trims_and_drops_blank_lines(self, preprocessor):
        assert preprocessor.get_lines("  a \r\n\n b\n   \n") == ["a", "b"]

    def test_empty(self, preprocessor):
        assert preprocessor.get_lines("") == []


class TestNormalizeDate:
    @pytest.mark.parametrize("raw,expected", [
        ("15/03/2024", "2024-03-15"),
        ("03/15/2024", "2024-03-15"),
        ("2024-03-15", "2024-03-15"),
        ("15-03-2024", "2024-03-15"),
        ("15 Mar 2024", "2024-03-15"),
        ("15-Mar-2024", "2024-03-15"),
        ("Mar 15, 2024", "2024-03-15"),
        ("15 March 2024", "2024-03-15"),
        ("15.03.2024", "2024-03-15"),
        ("2024/03/15", "2024-03-15"),
        ("01/01/24", "2024-01-01"),
        ("March 15th, 2024", "2024-03-15"),
    ])
    def test_formats(self, preprocessor, raw, expected):
        assert preprocessor.normalize_date(raw) == expected

    @pytest.mark.parametrize("raw", ["not a date", "", None, "   ", "12", "May", "3rd", "Monday"])
    def test_unreadable_returns_none(self, preprocessor, raw):
        assert preprocessor.normalize_date(raw) is None

    def test_fallback_rejects_old_years(self, preprocessor):
        assert preprocessor.normalize_date("1985") is None


class TestNormalizeAmount:
    @pytest.mark.parametrize("raw,expected", [
        ("1234.56", 1234.56),
        ("1,23,456.78", 123456.78),
        ("₹ 5,000.00", 5000.0),
        ("$1,234.50", 1234.5),
        ("Rs. 2,500", 2500.0),
        ("INR 100.00", 100.0),
        ("INR500.00", 500.0),
        ("Rs.500.00", 500.0),
        ("(1,500.00)", -1500.0),
        ("-750.50", -750.5),
        (42, 42.0),
    ])
    def test_values(self, raw, expected):
        assert TextPreprocessor.normalize_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["N/A", "", None, "nan", True])
    def test_unparseable_returns_none(self, raw):
        assert TextPreprocessor.normalize_amount(raw) is None

    def test_parentheses_negate(self):
        assert TextPreprocessor.normalize_amount("(2,000.00)") == -TextPreprocessor.normalize_amount("2,000.00")


class TestCalcConfidence:
    def test_empty(self):
        assert TextPreprocessor.calc_confidence({}, ["a"]) == 0.0

    def test_all_filled(self):
        assert TextPreprocessor.calc_confidence({"a": "x", "b": 1.0}, ["a", "b"]) == 1.0

    def test_partial(self):
        assert TextPreprocessor.calc_confidence({"a": "x", "b": None}, ["a", "b"]) == 0.5

    def test_empty_string_is_unfilled(self):
        assert TextPreprocessor.calc_confidence({"a": "", "b": "y"}, ["a"]) == 0.2

    def test_no_required_fields(self):
        assert TextPreprocessor.calc_confidence({"a": "x", "b": None}) == 0.8


class TestHelpers:
    def test_find_amounts_skips_dotted_dates(self):
        assert find_amounts("30.04.2024 5,500.00") == [(5500.0, 11)]

    def test_find_amounts_with_glued_currency_prefix(self):
        assert find_amounts("Rs.500.00 INR1,200.00") == [(500.0, 0), (1200.0, 10)]

    def test_find_amounts_ignores_plain_integers(self):
        assert find_amounts("Account 123456 year 2024") == []

    def test_join_pages(self):
        assert join_pages(["one", "two"]) == "one" + PAGE_BREAK + "two"
