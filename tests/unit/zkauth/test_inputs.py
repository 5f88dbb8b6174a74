"""
Circuit Input Generation Unit Tests
===================================

[UNIT] Tests for zkauth/inputs.py with a recording stand-in hash.
"""

import hashlib
from dataclasses import replace

import pytest
from nacl.signing import SigningKey

from zkauth.bits import pack, split_128
from zkauth.config import P, dev_constants
from zkauth.errors import CapacityExceeded, ClaimNotFound, MalformedInput
from zkauth.inputs import (
    ALL_INPUTS_SCHEMA,
    all_inputs_hash,
    commit,
    commit_subject,
    compute_nonce,
    ephemeral_key_halves,
    generate_inputs,
)
from zkauth.token import Token, locate_claim


@pytest.fixture
def generate(params, commitment_hash, eph_key):
    """generate_inputs() with dev constants filled in."""
    def _generate(token, **kwargs):
        options = dict(
            params=params,
            hash_fn=commitment_hash,
            eph_public_key=eph_key,
            max_epoch=dev_constants.max_epoch,
            jwt_randomness=dev_constants.jwt_randomness,
            subject_pin=dev_constants.pin,
        )
        options.update(kwargs)
        return generate_inputs(token, **options)
    return _generate


# ============================================================================
# Full generation
# ============================================================================

class TestGenerateInputs:
    """Test generate_inputs()."""

    def test_public_scalars(self, generate, sample_token, params):
        inputs, aux = generate(sample_token)
        token = Token.parse(sample_token)

        assert inputs.payload_start_index == aux.payload_start_index == len(token.header) + 1
        assert inputs.payload_len == aux.payload_len == len(token.payload)
        assert inputs.num_sha2_blocks == aux.num_sha2_blocks == 8
        assert len(inputs.content) == len(inputs.mask) == params.max_padded_unsigned_jwt_len
        assert len(aux.masked_content) == params.max_padded_unsigned_jwt_len

    def test_sha2_hash(self, generate, sample_token):
        _, aux = generate(sample_token)
        unsigned = sample_token.rsplit(".", 1)[0].encode()
        digest = int.from_bytes(hashlib.sha256(unsigned).digest(), "big")
        assert aux.jwt_sha2_hash == split_128(digest)

    def test_masked_content_matches_mask(self, generate, sample_token, params):
        inputs, aux = generate(sample_token)
        for c, m, out in zip(inputs.content, inputs.mask, aux.masked_content):
            assert out == (c if m else params.mask_value)

    def test_hash_call_order(self, generate, sample_token, commitment_hash, eph_key):
        """masked content, subject, nonce, then the all-inputs commitment."""
        inputs, aux = generate(sample_token)
        masked_hash_in, subject_in, nonce_in, all_in = commitment_hash.calls

        assert masked_hash_in == pack(aux.masked_content, 8, 248)
        assert subject_in[-1] == dev_constants.pin
        assert nonce_in == [
            *ephemeral_key_halves(eph_key),
            dev_constants.max_epoch,
            dev_constants.jwt_randomness,
        ]
        assert len(all_in) == len(ALL_INPUTS_SCHEMA)

    def test_all_inputs_order(self, generate, sample_token, commitment_hash):
        inputs, aux = generate(sample_token)
        masked_hash_in, _, nonce_in, all_in = commitment_hash.calls
        values = dict(zip(ALL_INPUTS_SCHEMA, all_in))

        assert (values["sha2_hash_hi"], values["sha2_hash_lo"]) == aux.jwt_sha2_hash
        assert values["masked_content_hash"] == commitment_hash(masked_hash_in)
        assert values["payload_start_index"] == aux.payload_start_index
        assert values["payload_len"] == aux.payload_len
        assert (values["pubkey_hi"], values["pubkey_lo"]) == aux.eph_public_key
        assert values["max_epoch"] == dev_constants.max_epoch
        assert values["nonce"] == commitment_hash(nonce_in)
        assert values["num_sha2_blocks"] == aux.num_sha2_blocks
        assert values["subject_commitment"] == aux.subject_commitment
        assert inputs.all_inputs_hash == commitment_hash(all_in)

    def test_key_claim_inputs(self, generate, sample_token, params):
        inputs, _ = generate(sample_token)
        token = Token.parse(sample_token)
        span = locate_claim(token.payload, "sub")
        claim = b'"sub":"110463452167303598383",'

        assert inputs.extended_key_claim[:len(claim)] == list(claim)
        assert len(inputs.extended_key_claim) == params.max_extended_key_claim_len
        assert set(inputs.extended_key_claim[len(claim):]) == {0}
        assert inputs.claim_length_ascii == len(claim)
        assert inputs.claim_index_b64 == token.payload_start_index + span.index_b64
        assert inputs.claim_length_b64 == span.length_b64
        assert inputs.key_claim_name_length == 3

    def test_reveal_fields_override(self, generate, sample_token):
        default, _ = generate(sample_token)
        nothing, _ = generate(sample_token, reveal_fields=[])
        assert sum(nothing.mask) < sum(default.mask)

    def test_to_dict_all_strings(self, generate, sample_token):
        inputs, _ = generate(sample_token)
        data = inputs.to_dict()

        assert data["num_sha2_blocks"] == "8"
        assert data["eph_public_key"] == [str(x) for x in inputs.eph_public_key]
        assert all(isinstance(x, str) for x in data["content"])
        assert all(isinstance(x, str) for x in data["mask"])

    def test_integer_ephemeral_key(self, generate, sample_token):
        _, aux = generate(sample_token, eph_public_key=dev_constants.eph_public_key)
        assert aux.eph_public_key == split_128(dev_constants.eph_public_key)


class TestCapacity:
    """Inputs that do not fit the circuit are rejected, never truncated."""

    def test_token_too_long(self, generate, make_token):
        token = make_token({"sub": "1", "pad": "x" * 600})
        with pytest.raises(CapacityExceeded):
            generate(token)

    def test_key_claim_name_too_long(self, generate, make_token):
        token = make_token({"iss": "i", "aud": "a", "very_long_name": "v"})
        with pytest.raises(CapacityExceeded):
            generate(token, key_claim_name="very_long_name")

    def test_key_claim_value_too_long(self, generate, make_token):
        token = make_token({"iss": "i", "aud": "a", "sub": "1" * 51})
        with pytest.raises(CapacityExceeded):
            generate(token)

    def test_key_claim_value_at_limit(self, generate, make_token):
        token = make_token({"iss": "i", "aud": "a", "sub": "1" * 50})
        inputs, _ = generate(token)
        assert inputs.claim_length_ascii == 50 + 9

    def test_missing_key_claim(self, generate, make_token):
        token = make_token({"iss": "i", "aud": "a"})
        with pytest.raises(ClaimNotFound):
            generate(token)

    def test_bit_width_must_be_byte(self, generate, sample_token, params):
        with pytest.raises(MalformedInput):
            generate(sample_token, params=replace(params, in_width=16))


# ============================================================================
# Building blocks
# ============================================================================

class TestCommitments:

    def test_commit_rejects_non_field_input(self, commitment_hash):
        with pytest.raises(MalformedInput):
            commit(commitment_hash, [1, P])
        with pytest.raises(MalformedInput):
            commit(commitment_hash, [-1])
        assert commitment_hash.calls == []

    def test_commit_rejects_non_field_output(self):
        with pytest.raises(MalformedInput):
            commit(lambda values: P, [1, 2])

    def test_subject_commitment_arity(self, params, commitment_hash):
        commit_subject('"sub":"123",', 7, params, commitment_hash)
        (call,) = commitment_hash.calls

        # 66 bytes -> 3 field elements, then the pin
        assert len(call) == 4
        assert call[-1] == 7
        assert call[:3] == pack(list(b'"sub":"123"') + [0] * 55, 8, 248)

    def test_subject_commitment_ignores_terminator(self, params, commitment_hash):
        a = commit_subject('"sub":"123",', 7, params, commitment_hash)
        b = commit_subject('"sub":"123"}', 7, params, commitment_hash)
        assert a == b

    def test_nonce(self, commitment_hash):
        nonce = compute_nonce((1, 2), 10, 3, commitment_hash)
        assert commitment_hash.calls == [[1, 2, 10, 3]]
        assert 0 <= nonce < P

    def test_all_inputs_missing_value(self, commitment_hash):
        values = {name: 1 for name in ALL_INPUTS_SCHEMA}
        del values["nonce"]
        with pytest.raises(MalformedInput):
            all_inputs_hash(values, commitment_hash)


class TestEphemeralKey:

    def test_key_forms_agree(self):
        key = SigningKey.generate().verify_key
        raw = key.encode()

        expected = split_128(int.from_bytes(raw, "big"))
        assert ephemeral_key_halves(key) == expected
        assert ephemeral_key_halves(raw) == expected
        assert ephemeral_key_halves(int.from_bytes(raw, "big")) == expected

    def test_wrong_size(self):
        with pytest.raises(MalformedInput):
            ephemeral_key_halves(b"\x01" * 31)

    def test_unsupported_type(self):
        with pytest.raises(MalformedInput):
            ephemeral_key_halves("not a key")
