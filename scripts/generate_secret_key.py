#!/usr/bin/env python3
"""
Generate the secret used to sign KARAK API session tokens.

    python scripts/generate_secret_key.py [path/to/.env]

Without an argument the line is only printed. With a path, JWT_SECRET_KEY is
written into that .env file; other variables are left alone. Rotating the key
invalidates every issued token, so running API servers must be restarted.
"""

import secrets
import sys
from pathlib import Path

from dotenv import set_key

ENV_KEY = "JWT_SECRET_KEY"


def new_secret() -> str:
    return secrets.token_hex(32)


def write_secret(env_path, secret: str) -> Path:
    """Set JWT_SECRET_KEY in *env_path*, creating the file if needed."""
    env_path = Path(env_path)
    env_path.touch(exist_ok=True)
    set_key(str(env_path), ENV_KEY, secret, quote_mode="never")
    return env_path


if __name__ == "__main__":
    secret_key = new_secret()

    print("=" * 60)
    print("KARAK session secret generator")
    print("=" * 60)

    if len(sys.argv) > 1:
        path = write_secret(sys.argv[1], secret_key)
        print(f"\n[ok] {ENV_KEY} written to {path}")
        print("[!] Restart karak-api: tokens signed with the old key are now invalid.")
    else:
        print(f"\n{ENV_KEY}={secret_key}")
        print("\nCopy the line above to the .env next to your database.json,")
        print("or pass the .env path as an argument to write it there.")
    print("=" * 60)
