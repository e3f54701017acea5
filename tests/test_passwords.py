import hashlib

from app.auth.passwords import KEY_LEN, hash_password, random_password, verify_password


def test_hash_round_trip():
    stored = hash_password("secretpw12")
    assert verify_password("secretpw12", stored)
    assert not verify_password("secretpw13", stored)


def test_hash_format_is_hex_hash_dot_hex_salt():
    hashed, salt = hash_password("pw").split(".")
    assert len(bytes.fromhex(hashed)) == KEY_LEN
    assert len(bytes.fromhex(salt)) == 16


def test_same_password_gets_fresh_salt():
    assert hash_password("same") != hash_password("same")


def test_verifies_hash_written_by_node_service():
    # Node: scrypt(password, saltHexString, 64) with default N/r/p
    salt = "00112233445566778899aabbccddeeff"
    digest = hashlib.scrypt(b"password123", salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    assert verify_password("password123", f"{digest.hex()}.{salt}")


def test_malformed_stored_values_do_not_verify():
    for stored in ["", "nodot", "zz.salt", "abcd.salt", None]:
        assert verify_password("pw", stored) is False


def test_random_password_is_a_valid_hash():
    stored = random_password()
    hashed, salt = stored.split(".")
    assert len(hashed) == KEY_LEN * 2
    assert salt
