# -*- coding: utf-8 -*-
"""
cli.py  (WFIBE command-line tool)
---------------------------------
Commands:
  python -m wfibe.cli setup   --n 64 --m 64 --out keys/public_params.json --secret keys/master_secret.json
  python -m wfibe.cli keygen  --params keys/public_params.json --secret keys/master_secret.json \
                              --attrs "role:doctor,dept:cardio" --policy "role:nurse=3,dept:cardio=2" \
                              --out keys/bob_key.json
  python -m wfibe.cli encrypt --params keys/public_params.json \
                              --attrs "role:nurse,dept:cardio" --policy "role:doctor=3,dept:cardio=2" \
                              --message "hello" --store keys/store --sender-id alice

Notes:
- The master secret never leaves the authority in a real deployment.
  This PoC writes it to JSON so keygen can run as a separate process.
- Defaults come from WFIBE_* environment variables (see wfibe.config).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List, Optional

from . import params as wparams
from .config import DEFAULT_CIPHER, MASTER_SECRET_FILE, Settings
from .core import keygen, setup
from .errors import WFIBEError
from .object_store import EnvelopeStore
from .sender import Sender
from .symmetric import CIPHERS


def parse_attrs(raw: str) -> List[str]:
    return [x.strip() for x in raw.split(",") if x.strip()]


def parse_policy(raw: str) -> Dict[str, int]:
    """'a=3,b=2' -> {'a': 3, 'b': 2}"""
    policy: Dict[str, int] = {}
    for item in parse_attrs(raw):
        name, sep, weight = item.rpartition("=")
        if not sep or not name.strip():
            raise SystemExit(f"bad policy entry {item!r}; expected name=weight")
        try:
            policy[name.strip()] = int(weight)
        except ValueError:
            raise SystemExit(f"bad policy weight in {item!r}") from None
    return policy


def cmd_setup(args: argparse.Namespace) -> None:
    res = setup(args.n, args.m, pairing=args.pairing)
    wparams.save_public_params(args.out, res.public)
    blob = wparams.dump_master_secret(res.public.ctx, res.secret)
    blob.update({"n": args.n, "m": args.m, "pairing": args.pairing})
    wparams.save_json(args.secret, blob)
    print(f"[PKG] Setup OK -> {args.out}  (setup={res.setup_time_ms:.0f} ms, "
          f"mpk={res.public_key_size} bytes, msk={res.master_key_size} bytes)")


def cmd_keygen(args: argparse.Namespace) -> None:
    pp = wparams.load_public_params(args.params)
    msk = wparams.load_master_secret(pp.ctx, wparams.load_json(args.secret))

    res = keygen(pp, msk, parse_attrs(args.attrs), parse_policy(args.policy))
    if not res.ok:
        raise SystemExit(f"[PKG] KeyGen FAILED: {res.error}")

    wparams.save_json(args.out, res.secret_key.to_dict())
    print(f"[PKG] KeyGen OK -> {args.out}  (size={res.key_size} bytes, "
          f"time={res.keygen_time_ms:.1f} ms)")


def cmd_encrypt(args: argparse.Namespace) -> None:
    if args.infile:
        with open(args.infile, "rb") as f:
            message = f.read()
    else:
        message = args.message.encode("utf-8")

    sender = Sender.from_file(args.params, parse_attrs(args.attrs), parse_policy(args.policy),
                              threshold=args.threshold, sender_id=args.sender_id,
                              cipher=args.cipher)
    res = sender.encrypt(message)
    if not res.ok:
        raise SystemExit(f"[SENDER] Encrypt FAILED: {res.error}")

    envelope = sender.envelope(res)
    if args.out:
        wparams.save_json(args.out, envelope.to_dict())
        target = args.out
    else:
        store = EnvelopeStore(args.store)
        if not sender.send(envelope, store.receive):
            raise SystemExit("[SENDER] Store rejected the envelope")
        target = f"{args.store}/{envelope.sender_id}/{envelope.sequence_number}.json"
    print(f"[SENDER] Encrypt OK -> {target}  (d={sender.threshold}, "
          f"size={res.ciphertext_size} bytes, expansion={res.expansion_rate:.2f})")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="wfibe", description="Weighted fuzzy IBE command-line tool"
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    # --- setup ---
    s0 = sub.add_parser("setup", help="Run Setup and write public parameters / master secret")
    s0.add_argument("--n", type=int, default=settings.n, help="Receiver policy dimension")
    s0.add_argument("--m", type=int, default=settings.m, help="Receiver attribute dimension")
    s0.add_argument("--pairing", default=settings.pairing, help="Charm curve name or PBC block")
    s0.add_argument("--out", default=settings.public_params_file, help="Public parameters path")
    s0.add_argument("--secret", default=MASTER_SECRET_FILE, help="Master secret path")
    s0.set_defaults(func=cmd_setup)

    # --- keygen ---
    s1 = sub.add_parser("keygen", help="Generate a receiver secret key")
    s1.add_argument("--params", default=settings.public_params_file, help="Public parameters path")
    s1.add_argument("--secret", default=MASTER_SECRET_FILE, help="Master secret path")
    s1.add_argument("--attrs", required=True, help='Receiver attributes, e.g. "A,B,C"')
    s1.add_argument("--policy", required=True, help='Receiver policy, e.g. "A=3,B=2"')
    s1.add_argument("--out", required=True, help="Output path for the key JSON")
    s1.set_defaults(func=cmd_keygen)

    # --- encrypt ---
    s2 = sub.add_parser("encrypt", help="Encrypt a message as a sender")
    s2.add_argument("--params", default=settings.public_params_file, help="Public parameters path")
    s2.add_argument("--attrs", required=True, help="Sender attributes")
    s2.add_argument("--policy", required=True, help="Sender policy")
    s2.add_argument("--threshold", type=int, default=None,
                    help="Threshold d (default: half of the policy weight)")
    s2.add_argument("--cipher", default=DEFAULT_CIPHER, choices=CIPHERS)
    s2.add_argument("--sender-id", default=None)
    src = s2.add_mutually_exclusive_group(required=True)
    src.add_argument("--message", help="UTF-8 message text")
    src.add_argument("--in", dest="infile", help="Read the message from a file")
    s2.add_argument("--out", default=None, help="Write the envelope JSON here instead of the store")
    s2.add_argument("--store", default=settings.store_dir, help="Envelope store directory")
    s2.set_defaults(func=cmd_encrypt)

    return ap


def main(argv: Optional[List[str]] = None) -> None:
    try:
        settings = Settings.from_env()
    except WFIBEError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        raise SystemExit(1)
    args = build_parser(settings).parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (WFIBEError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
