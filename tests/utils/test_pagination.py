"""Tests for pagination tokens and rounding helpers"""
import json

import pytest

from review_service.core.errors import InvalidCursorError
from review_service.utils.pagination import decode_cursor, encode_cursor
from review_service.utils.rounding import divide_half_up, round_half_up


class TestCursorTokens:
    """Test encoding and decoding next_token"""

    def test_encode(self):
        """Test tokens are compact JSON with sorted keys"""
        token = encode_cursor({"review_id": "rev-2", "product_id": "prod-1"})
        assert token == '{"product_id":"prod-1","review_id":"rev-2"}'
        assert encode_cursor(None) is None

    def test_decode(self):
        """Test a token issued for the same index and hash value"""
        token = json.dumps({"product_id": "prod-1", "review_id": "rev-2"})
        assert decode_cursor(token, "product_id", "prod-1") == {"product_id": "prod-1", "review_id": "rev-2"}

    def test_empty_token(self):
        assert decode_cursor(None, "product_id") is None
        assert decode_cursor("", "product_id") is None

    @pytest.mark.parametrize("token", [
        "not json",
        "[1, 2]",
        '{"product_id": "prod-1"}',
        '{"product_id": "prod-1", "review_id": "rev-1", "extra": "x"}',
        '{"product_id": "prod-1", "review_id": 5}',
        '{"user_id": "u-1", "review_id": "rev-1"}',
    ])
    def test_rejects_malformed_tokens(self, token):
        """Test malformed or foreign tokens raise"""
        with pytest.raises(InvalidCursorError):
            decode_cursor(token, "product_id")

    def test_rejects_other_hash_value(self):
        """Test a token for one product cannot page another"""
        token = json.dumps({"product_id": "prod-1", "review_id": "rev-2"})
        with pytest.raises(InvalidCursorError):
            decode_cursor(token, "product_id", "prod-2")


class TestRounding:
    """Test half-up rounding"""

    def test_half_up(self):
        """Test halves round away from zero, unlike round()"""
        assert round_half_up(2.675) == 2.68
        assert round_half_up(0.125) == 0.13
        assert round_half_up(3.4) == 3.4

    def test_divide(self):
        assert divide_half_up(17, 5) == 3.4
        assert divide_half_up(13, 4) == 3.25
        assert divide_half_up(2, 3) == 0.67
        assert divide_half_up(5, 0) == 0.0
