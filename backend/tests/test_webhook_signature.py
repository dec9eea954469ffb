import pytest

from app.utils.webhook_signature import (
    compute_webhook_signature,
    get_signature_header,
    verify_webhook_signature,
)

SECRET = "whsec_test_secret"
BODY = b'{"conversation_id":"conv_123","duration":120}'


class TestVerifyWebhookSignature:

    def test_valid_hex_signature(self):
        sig = compute_webhook_signature(BODY, SECRET)
        assert verify_webhook_signature(BODY, sig, SECRET) is True

    def test_sha256_prefix_accepted(self):
        sig = compute_webhook_signature(BODY, SECRET)
        assert verify_webhook_signature(BODY, f"sha256={sig}", SECRET) is True
        assert verify_webhook_signature(BODY, f"SHA256={sig}", SECRET) is True

    def test_uppercase_hex_accepted(self):
        sig = compute_webhook_signature(BODY, SECRET).upper()
        assert verify_webhook_signature(BODY, sig, SECRET) is True

    def test_surrounding_whitespace_ignored(self):
        sig = compute_webhook_signature(BODY, SECRET)
        assert verify_webhook_signature(BODY, f"  {sig} ", SECRET) is True

    def test_wrong_secret_rejected(self):
        sig = compute_webhook_signature(BODY, "some-other-secret")
        assert verify_webhook_signature(BODY, sig, SECRET) is False

    def test_tampered_body_rejected(self):
        sig = compute_webhook_signature(BODY, SECRET)
        assert verify_webhook_signature(BODY.replace(b"120", b"999"), sig, SECRET) is False

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_header_fails_closed(self, header):
        assert verify_webhook_signature(BODY, header, SECRET) is False

    @pytest.mark.parametrize("secret", [None, "", "  "])
    def test_unsigned_mode_accepts_everything(self, secret):
        assert verify_webhook_signature(BODY, None, secret) is True
        assert verify_webhook_signature(BODY, "garbage", secret) is True

    def test_non_hex_garbage_rejected(self):
        assert verify_webhook_signature(BODY, "not-a-signature", SECRET) is False


class TestGetSignatureHeader:

    def test_primary_header(self):
        assert get_signature_header({"elevenlabs-signature": "abc"}) == "abc"

    def test_x_prefixed_header(self):
        assert get_signature_header({"x-elevenlabs-signature": "def"}) == "def"

    def test_plain_dict_is_case_insensitive(self):
        assert get_signature_header({"ElevenLabs-Signature": "ghi"}) == "ghi"

    def test_primary_wins_over_x_prefixed(self):
        headers = {"x-elevenlabs-signature": "second", "elevenlabs-signature": "first"}
        assert get_signature_header(headers) == "first"

    def test_absent(self):
        assert get_signature_header({"content-type": "application/json"}) is None
