from __future__ import annotations

from clovalink.crypto.keys import generate_key_pair
from clovalink.crypto.symmetric import aead_decrypt, aead_encrypt, generate_msg_key


def run_selftest() -> None:
    # Local import: envelope imports this module lazily for the capability check.
    from clovalink.crypto.envelope import decrypt_message, encrypt_message

    # --- AES-GCM roundtrip ---
    key = generate_msg_key()
    aad = b'meta:test'
    pt = b'hello encrypted world'

    out = aead_encrypt(key=key, plaintext=pt, aad=aad)
    back = aead_decrypt(key=key, nonce=out.nonce, ciphertext=out.ciphertext, aad=aad)
    assert back == pt, 'AES-GCM roundtrip failed'

    # --- RSA-OAEP envelope roundtrip ---
    kp = generate_key_pair()
    env = encrypt_message('selftest', kp.public_key)
    assert env.encrypted_content != 'selftest', 'Envelope content not encrypted'
    assert decrypt_message(env.encrypted_content, env.encrypted_key, env.iv, kp.private_key) == 'selftest', \
        'Envelope roundtrip failed'


def main() -> None:
    run_selftest()
    print('OK: crypto selftest passed')


if __name__ == '__main__':
    main()
