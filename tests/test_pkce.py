"""Tests for PKCE and state generation."""

import string
import uuid

import pytest

from app.utils.pkce import derive_code_challenge, generate_code_verifier, generate_state

UNRESERVED = set(string.ascii_letters + string.digits + "-._~")


class TestCodeChallenge:
    def test_s256_matches_rfc7636_vector(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_s256_has_no_padding(self):
        assert "=" not in derive_code_challenge(generate_code_verifier())

    def test_plain_passes_verifier_through(self):
        assert derive_code_challenge("abc" * 20, "plain") == "abc" * 20


class TestCodeVerifier:
    def test_default_length_and_alphabet(self):
        verifier = generate_code_verifier()
        assert len(verifier) == 128
        assert set(verifier) <= UNRESERVED

    def test_minimum_length(self):
        assert len(generate_code_verifier(43)) == 43

    @pytest.mark.parametrize("length", [10, 42, 129])
    def test_rejects_out_of_range_length(self, length):
        with pytest.raises(ValueError):
            generate_code_verifier(length)


class TestState:
    def test_state_is_uuid(self):
        assert uuid.UUID(generate_state()).version == 4

    def test_states_do_not_collide(self):
        states = {generate_state() for _ in range(1000)}
        assert len(states) == 1000
