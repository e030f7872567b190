"""The Command Line Interface for the utility.

Loads a PEM key file into a KeyedCipher and runs one operation on a message given on the command line, or read from
a file when the message starts with `P:`. Binary outputs (ciphertext, signatures) are printed as Base64.

Typical usage example:

    rsacipher encrypt -k id_rsa.pub -m "Hi there!"
    OR
    python -m rsacipher sign -k id_rsa -m P:README.md
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import base64
import binascii
import logging
import pathlib
import sys

import rsacipher
from rsacipher.engine import DEFAULT_DIGEST
from rsacipher.engine import DEFAULT_ENCODING
from rsacipher.engine import DIGESTS

logger = logging.getLogger(__name__)

keyp = argparse.ArgumentParser(add_help=False)
keyp.add_argument("--key", "-k", type=pathlib.Path, required=True, help="Location of the PEM key file.")
payloads = argparse.ArgumentParser(add_help=False)
payloads.add_argument("--message",
                      "-m",
                      required=True,
                      help="Message or path to file containing payload. If Path start with `P:`")
encp = argparse.ArgumentParser(add_help=False)
encp.add_argument("--encoding",
                  "-e",
                  choices=["utf-8", "utf-16", "ascii", "latin-1"],
                  default=DEFAULT_ENCODING,
                  help="Payload encoding.")
digp = argparse.ArgumentParser(add_help=False)
digp.add_argument("--digest", "-d", choices=sorted(DIGESTS), default=DEFAULT_DIGEST, help="Digest algorithm to use.")
corep = argparse.ArgumentParser(prog="rsacipher")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {rsacipher.__version__}")
corep.add_argument("--verbose", action="store_true", help="Enable debug logging")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands", required=True)

commands.add_parser("encrypt", parents=[keyp, payloads, encp], help="Encryption utility.")
commands.add_parser("decrypt", parents=[keyp, payloads, encp], help="Decryption utility.")
commands.add_parser("sign", parents=[keyp, payloads, digp, encp], help="Signing utility.")
verify = commands.add_parser("verify", parents=[keyp, payloads, digp, encp], help="Signature verification utility.")
verify.add_argument("--signature", "-S", required=True, help="The Base64 signature to validate.")
public = commands.add_parser("public", parents=[keyp], help="Extract the public key of a key file.")
public.add_argument("--output", "-o", type=pathlib.Path, required=True, help="Destination of the public key file.")


def check_message(mess: str, enc: str) -> str:
    """Parse message for path-notice."""
    if mess.startswith("P:"):
        with open(mess[2:], "r", encoding=enc) as f:
            mess = f.read()
    return mess


def run(args: argparse.Namespace) -> int:
    """Executes one parsed subcommand, returning the exit status."""
    cipher = rsacipher.load_cipher(args.key)
    match args.subcommand:
        case "encrypt":
            print(cipher.encrypt_text(check_message(args.message, args.encoding), args.encoding))
        case "decrypt":
            print(cipher.decrypt_text(check_message(args.message, "ascii").strip(), args.encoding))
        case "sign":
            payload = check_message(args.message, args.encoding).encode(args.encoding)
            print(base64.b64encode(cipher.sign(payload, args.digest)).decode("ascii"))
        case "verify":
            payload = check_message(args.message, args.encoding).encode(args.encoding)
            try:
                signature = base64.b64decode(args.signature, validate=True)
            except binascii.Error as exc:
                raise rsacipher.InvalidArgument("Signature is not valid Base64.") from exc
            if not cipher.verify(payload, signature, args.digest):
                print("Signature Verification Failed!")
                return 1
            print("Signature Verified!")
        case "public":
            rsacipher.save_cipher(cipher.public_only(), args.output)
            logger.debug("Wrote public key to %s", args.output)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Core CLI entry point."""
    args = corep.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        status = run(args)
    except (rsacipher.RSACipherError, OSError, ValueError, RuntimeError) as exc:
        logger.debug("Command %s failed", args.subcommand, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        status = 2
    sys.exit(status)


if __name__ == "__main__":
    main()
