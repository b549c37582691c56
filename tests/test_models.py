"""Tests for create-link request validation."""

from decimal import Decimal

import pytest

from peanutlink.errors import InvalidAmountError, InvalidTokenTypeError
from peanutlink.issuance.models import IssuanceResult, LinkRequest
from peanutlink.links.base import TokenType


class TestLinkRequest:
    """Tests for LinkRequest.from_payload."""

    def test_valid_request(self):
        request = LinkRequest.from_payload({"amount": 1.5, "tokenType": 1})

        assert request.amount == Decimal("1.5")
        assert request.token_type == TokenType.ERC20

    def test_token_type_defaults_to_native(self):
        """Omitted tokenType means 0."""
        omitted = LinkRequest.from_payload({"amount": 2})
        explicit = LinkRequest.from_payload({"amount": 2, "tokenType": 0})

        assert omitted.token_type == TokenType.NATIVE
        assert omitted == explicit

    def test_null_token_type_rejected(self):
        """An explicit null is not the same as leaving the field out."""
        with pytest.raises(InvalidTokenTypeError) as exc_info:
            LinkRequest.from_payload({"amount": 2, "tokenType": None})

        assert exc_info.value.violations[0].startswith("tokenType")

    @pytest.mark.parametrize("amount", [0, -1, -0.01])
    def test_non_positive_amount(self, amount):
        with pytest.raises(InvalidAmountError):
            LinkRequest.from_payload({"amount": amount})

    @pytest.mark.parametrize("amount", ["1.5", "abc", True, None, [1], {"value": 1}])
    def test_amount_must_be_a_number(self, amount):
        """Numeric strings are rejected like any other non-number."""
        with pytest.raises(InvalidAmountError):
            LinkRequest.from_payload({"amount": amount})

    def test_missing_amount(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            LinkRequest.from_payload({})

        assert exc_info.value.violations[0].startswith("amount")

    @pytest.mark.parametrize("token_type", [4, -1, "1", True, 1.5])
    def test_invalid_token_type(self, token_type):
        with pytest.raises(InvalidTokenTypeError) as exc_info:
            LinkRequest.from_payload({"amount": 1, "tokenType": token_type})

        assert exc_info.value.public_message == 'Invalid "tokenType". Valid types are 0, 1, 2, 3.'

    def test_integral_float_token_type(self):
        """JSON 3.0 is the number 3."""
        request = LinkRequest.from_payload({"amount": 1, "tokenType": 3.0})
        assert request.token_type == TokenType.ERC1155

    def test_all_violations_reported(self):
        """Amount error wins but both problems are listed."""
        with pytest.raises(InvalidAmountError) as exc_info:
            LinkRequest.from_payload({"amount": -5, "tokenType": 9})

        violations = exc_info.value.violations
        assert len(violations) == 2
        assert violations[0].startswith("amount")
        assert violations[1].startswith("tokenType")

    def test_body_must_be_an_object(self):
        with pytest.raises(InvalidAmountError):
            LinkRequest.from_payload([1, 2, 3])

    def test_request_is_immutable(self):
        request = LinkRequest.from_payload({"amount": 1})
        with pytest.raises(Exception):
            request.amount = Decimal("2")


class TestIssuanceResult:
    """Tests for IssuanceResult."""

    def test_wire_format(self):
        result = IssuanceResult(link="https://peanut.to/claim?c=1", tx_hashes=["0xabc"])

        assert result.to_wire() == {
            "link": "https://peanut.to/claim?c=1",
            "txHashes": ["0xabc"],
        }
