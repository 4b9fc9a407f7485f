"""Tests for treatment coercion."""

import pytest
from openfeature.exception import ErrorCode, ParseError, TypeMismatchError

from split_provider.coercion import FlagType, coerce, parse_json_treatment


class TestBooleanCoercion:
    """Tests for BOOLEAN coercion."""

    @pytest.mark.parametrize("treatment", ["true", "TRUE", "True", "on", "ON", "On"])
    def test_truthy_treatments(self, treatment):
        """true/on in any case should coerce to True."""
        assert coerce(treatment, FlagType.BOOLEAN) is True

    @pytest.mark.parametrize("treatment", ["false", "FALSE", "off", "OFF", "Off"])
    def test_falsy_treatments(self, treatment):
        """false/off in any case should coerce to False."""
        assert coerce(treatment, FlagType.BOOLEAN) is False

    @pytest.mark.parametrize("treatment", ["tru", "yes", "1", "", " true", "off "])
    def test_other_treatments_fail(self, treatment):
        """Anything else, including padded values, should fail."""
        with pytest.raises(TypeMismatchError) as exc_info:
            coerce(treatment, FlagType.BOOLEAN)
        assert exc_info.value.error_code == ErrorCode.TYPE_MISMATCH


class TestNumericCoercion:
    """Tests for INTEGER and FLOAT coercion."""

    def test_integer(self):
        """Base-10 integers should parse."""
        assert coerce("123", FlagType.INTEGER) == 123
        assert coerce("-42", FlagType.INTEGER) == -42
        assert coerce("+7", FlagType.INTEGER) == 7

    @pytest.mark.parametrize("treatment", ["notAnInt", "1.5", " 123", "123 ", "1_000", "0x10", ""])
    def test_integer_failures(self, treatment):
        """Non-integer text should fail."""
        with pytest.raises(TypeMismatchError):
            coerce(treatment, FlagType.INTEGER)

    def test_integer_range(self):
        """Values outside 64 bits should fail."""
        assert coerce("9223372036854775807", FlagType.INTEGER) == 2**63 - 1
        assert coerce("-9223372036854775808", FlagType.INTEGER) == -(2**63)
        with pytest.raises(TypeMismatchError):
            coerce("9223372036854775808", FlagType.INTEGER)

    def test_float(self):
        """Decimal numbers should parse."""
        assert coerce("3.14", FlagType.FLOAT) == pytest.approx(3.14)
        assert coerce("10", FlagType.FLOAT) == 10.0
        assert coerce("-.5", FlagType.FLOAT) == -0.5
        assert coerce("1e3", FlagType.FLOAT) == 1000.0

    @pytest.mark.parametrize("treatment", ["pi", " 3.14", "3.14 ", "nan", "inf", "1,5", ""])
    def test_float_failures(self, treatment):
        """Non-numeric text should fail."""
        with pytest.raises(TypeMismatchError):
            coerce(treatment, FlagType.FLOAT)


class TestPassThroughCoercion:
    """Tests for STRING and OBJECT coercion."""

    @pytest.mark.parametrize("flag_type", [FlagType.STRING, FlagType.OBJECT])
    def test_echoes_treatment(self, flag_type):
        """The treatment should come back verbatim."""
        assert coerce("banana", flag_type) == "banana"
        assert coerce("  spaced  ", flag_type) == "  spaced  "
        assert coerce("", flag_type) == ""


class TestParseJsonTreatment:
    """Tests for parse_json_treatment."""

    def test_parses_object(self):
        """A JSON object should become a dict."""
        value = parse_json_treatment('{"color": "red", "size": 3, "tags": ["a"], "on": true}')
        assert value == {"color": "red", "size": 3, "tags": ["a"], "on": True}

    @pytest.mark.parametrize("treatment", ["[1, 2]", '"text"', "42", "null"])
    def test_rejects_non_objects(self, treatment):
        """Valid JSON that is not an object should fail."""
        with pytest.raises(ParseError, match="must be a JSON object"):
            parse_json_treatment(treatment)

    def test_rejects_invalid_json(self):
        """Invalid JSON should fail with a parse error."""
        with pytest.raises(ParseError) as exc_info:
            parse_json_treatment("on")
        assert exc_info.value.error_code == ErrorCode.PARSE_ERROR
