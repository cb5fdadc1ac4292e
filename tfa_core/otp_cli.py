#!/usr/bin/env python3
"""
otp_cli.py - command-line access to the HOTP second factor.

Subcommands:
- init     : generate (or import) a seed for a user and print the otpauth URI
- hotp     : print the HOTP code for a user's seed at a given counter
- validate : validate a code exactly as a login would
- counter  : print the last accepted counter
- ready    : tell whether the user has a usable seed
- delete   : remove the user's seed
- check    : report whether the configured cipher can run here

Secrets and storage come from TfaSettings (TFA_* environment variables).
"""

import argparse
import sys

from tfa_core import otp_core
from tfa_core.ciphers import get_cipher_suite
from tfa_core.exceptions import TfaError
from tfa_core.logger import configure_app_logging
from tfa_core.settings import get_settings
from tfa_core.validator import HotpValidator, build_validator, message_for
from tfa_database import SqliteSecretStore


def _counter(value: str) -> int:
    counter = int(value)
    if counter < 0:
        raise argparse.ArgumentTypeError("counter must be a non-negative integer")
    return counter


def _validator(args) -> HotpValidator:
    settings = get_settings()
    database = args.database or settings.database_file
    return build_validator(settings, SqliteSecretStore(database))


# --- CLI command handlers ---
def cmd_init(args) -> int:
    validator = _validator(args)
    seed = args.seed or otp_core.generate_base32_secret()
    validator.store_seed(args.user, seed)

    uri = otp_core.format_otpauth_uri(
        seed, account=args.account or args.user, issuer=args.issuer,
        digits=validator.code_length,
        counter=validator.get_hotp_counter(args.user) + 1,
    )
    print(f"[*] Seed stored for user '{args.user}'")
    print("    HOTP:", uri)
    return 0


def cmd_hotp(args) -> int:
    validator = _validator(args)
    seed = validator.seed_vault.get_seed(args.user)
    if seed is None:
        print(f"[user={args.user}] [-] No seed configured")
        return 1

    try:
        key = otp_core.decode_seed(seed)
    except ValueError:
        print(f"[user={args.user}] [-] Stored seed is not valid base32")
        return 1

    code = otp_core.hotp(key, args.counter, validator.code_length)
    print(f"[user={args.user}] HOTP({validator.code_length}d, counter={args.counter}): {code}")
    return 0


def cmd_validate(args) -> int:
    result = _validator(args).validate(args.user, args.code)
    if result:
        print(f"[user={args.user}] [+] HOTP code is VALID (counter = {result.counter})")
        return 0
    print(f"[user={args.user}] [-] HOTP code is INVALID ({result.reason.value})")
    for message in message_for(result):
        print("    " + message)
    return 1


def cmd_counter(args) -> int:
    print(_validator(args).get_hotp_counter(args.user))
    return 0


def cmd_ready(args) -> int:
    ok = _validator(args).ready(args.user)
    print(f"[user={args.user}] ready = {ok}")
    return 0 if ok else 1


def cmd_delete(args) -> int:
    _validator(args).delete_seed(args.user)
    print(f"[user={args.user}] seed deleted")
    return 0


def cmd_check(args) -> int:
    cipher = get_cipher_suite(get_settings().cipher_method.value)
    missing = cipher.check_availability()
    if missing:
        print(f"[!] {cipher.title} unavailable:")
        for item in missing:
            print("    - " + item)
        return 1
    print(f"[*] {cipher.title} available")
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="HOTP second-factor CLI")
    p.add_argument("--database", help="Override the sqlite database file")
    sub = p.add_subparsers(dest="cmd", required=True)

    pi = sub.add_parser("init", help="Generate or import a seed for a user")
    pi.add_argument("--user", required=True, help="Account id")
    pi.add_argument("--seed", help="Existing base32 seed (random if omitted)")
    pi.add_argument("--account", help="Account label for otpauth URI (defaults to --user)")
    pi.add_argument("--issuer", default=otp_core.DEFAULT_ISSUER, help="Issuer label for otpauth URI")
    pi.set_defaults(func=cmd_init)

    ph = sub.add_parser("hotp", help="Generate HOTP code for a specific counter")
    ph.add_argument("--user", required=True, help="Account id")
    ph.add_argument("--counter", type=_counter, required=True)
    ph.set_defaults(func=cmd_hotp)

    pv = sub.add_parser("validate", help="Validate a HOTP code")
    pv.add_argument("--user", required=True, help="Account id")
    pv.add_argument("--code", required=True, help="OTP code to validate")
    pv.set_defaults(func=cmd_validate)

    for name, func, help_text in (
        ("counter", cmd_counter, "Print the last accepted counter"),
        ("ready", cmd_ready, "Check whether the user has a usable seed"),
        ("delete", cmd_delete, "Delete the user's seed"),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("--user", required=True, help="Account id")
        sp.set_defaults(func=func)

    pc = sub.add_parser("check", help="Check the configured cipher's dependencies")
    pc.set_defaults(func=cmd_check)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_app_logging(get_settings().log_level)
    try:
        return args.func(args)
    except TfaError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
