"""
sharedmeta - Command line entry point.

Manages the local identity keystore and drives the messaging protocol
against the relay configured in config.toml.
"""

import argparse
import os
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from . import __version__
from .config import Config
from .errors import SharedMetaError, ValidationError
from .identity import Identity
from .keystore import IdentityStore
from .protocol import MessageProtocol
from .utils import (
    format_address,
    format_timestamp_millis,
    setup_logging,
    truncate_string,
    validate_address,
    validate_invitation_id,
)

PASSWORD_ENV = "SHAREDMETA_PASSWORD"

console = Console()


def _password(confirm: bool = False) -> str:
    password = os.environ.get(PASSWORD_ENV)
    if password:
        return password

    password = Prompt.ask("Keystore password", password=True, console=console)
    if confirm and Prompt.ask("Repeat password", password=True, console=console) != password:
        raise SystemExit("Passwords do not match")
    return password


def _load_identity(store: IdentityStore) -> Identity:
    return store.load(_password())


def _protocol(config: Config, store: IdentityStore) -> MessageProtocol:
    return MessageProtocol.from_config(_load_identity(store), config)


def _cmd_init(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    try:
        seed = bytes.fromhex(args.seed) if args.seed else None
    except ValueError:
        raise SystemExit(f"Seed must be hexadecimal: {args.seed}")
    identity = store.create(_password(confirm=True), seed)
    console.print(f"[green]Identity created[/green] in {store.path}")
    console.print(f"Address:    {identity.address}")
    console.print(f"Public key: {identity.public_key_export}")
    return 0


def _cmd_show(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    identity = _load_identity(store)
    table = Table(title="Identity")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Address", format_address(identity.address))
    table.add_row("Public key", identity.public_key_export)
    table.add_row("Keystore", str(store.path))
    table.add_row("Relay", str(config.get("api", "url")))
    console.print(table)
    return 0


def _cmd_encrypt(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    console.print(_protocol(config, store).encrypt_for(args.to, args.text), soft_wrap=True)
    return 0


def _cmd_decrypt(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    plaintext = _protocol(config, store).decrypt_from(args.sender, args.ciphertext)
    console.print(escape(plaintext), soft_wrap=True)
    return 0


def _cmd_send(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    if not validate_address(args.recipient):
        raise SystemExit(f"Not a valid address: {args.recipient}")
    envelope = _protocol(config, store).send_message(args.recipient, args.payload, args.type)
    console.print(f"[green]Sent[/green] message {envelope.id} to {envelope.recipient}")
    return 0


def _cmd_messages(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    rejected: List[ValidationError] = []
    on_invalid = rejected.append if args.skip_invalid else None
    messages = _protocol(config, store).fetch_messages(not args.all, on_invalid)

    table = Table(title=f"Messages ({len(messages)})")
    table.add_column("ID", style="cyan")
    table.add_column("Sender")
    table.add_column("Type", justify="right")
    table.add_column("Processed")
    table.add_column("Received", style="dim")
    table.add_column("Payload")
    for envelope in messages:
        table.add_row(
            envelope.id or "",
            envelope.sender,
            str(envelope.type),
            "yes" if envelope.processed else "no",
            format_timestamp_millis(envelope.created),
            escape(truncate_string(envelope.payload, 40)),
        )
    console.print(table)

    for error in rejected:
        console.print(f"[yellow]Rejected[/yellow] {error.details.get('id')}: {escape(error.message)}")
    return 0


def _cmd_processed(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    _protocol(config, store).mark_processed(args.message_id, not args.unset)
    state = "unprocessed" if args.unset else "processed"
    console.print(f"Message {args.message_id} marked {state}")
    return 0


def _cmd_invite(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    if args.action != "create" and not args.invite_id:
        raise SystemExit(f"invite {args.action} needs an invitation id")
    if args.invite_id and not validate_invitation_id(args.invite_id):
        raise SystemExit(f"Not a valid invitation id: {args.invite_id}")

    protocol = _protocol(config, store)
    if args.action == "create":
        console.print(f"Invitation: {protocol.create_invitation().id}")
    elif args.action == "accept":
        invitation = protocol.accept_invitation(args.invite_id)
        console.print(f"Accepted invitation from {invitation.mdid}")
    elif args.action == "resolve":
        console.print(f"Contact: {protocol.resolve_invitation(args.invite_id)}")
    else:
        protocol.delete_invitation(args.invite_id)
        console.print(f"Deleted invitation {args.invite_id}")
    return 0


def _cmd_trust(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    if args.action != "list" and not args.address:
        raise SystemExit(f"trust {args.action} needs an address")
    if args.address and not validate_address(args.address):
        raise SystemExit(f"Not a valid address: {args.address}")

    protocol = _protocol(config, store)
    if args.action == "list":
        trust_list = protocol.list_trusted()
        table = Table(title="Trusted contacts")
        table.add_column("Address", style="cyan")
        for address in trust_list.contacts:
            table.add_row(address)
        console.print(table)
    elif args.action == "check":
        trusted = protocol.is_trusted(args.address)
        console.print(f"{args.address} is {'trusted' if trusted else 'not trusted'}")
        return 0 if trusted else 2
    elif args.action == "add":
        protocol.add_trusted(args.address)
        console.print(f"Trusted {args.address}")
    else:
        protocol.remove_trusted(args.address)
        console.print(f"Removed {args.address}")
    return 0


def _cmd_config_init(args: argparse.Namespace, config: Config, store: IdentityStore) -> int:
    Config.create_example(config.config_path)
    console.print(f"Wrote example configuration to {config.config_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the sharedmeta command."""
    parser = argparse.ArgumentParser(
        prog="sharedmeta",
        description="sharedmeta - signed, end-to-end encrypted shared metadata messaging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sharedmeta init                         # Create an identity keystore
  sharedmeta show                         # Show address and public key
  sharedmeta send <address> "hello"       # Send a signed message
  sharedmeta messages --all               # List verified messages
  sharedmeta encrypt --to <pubkey> "hi"   # Encrypt for a contact
        """,
    )
    parser.add_argument("--version", action="version", version=f"sharedmeta {__version__}")
    parser.add_argument("--config", type=str, default=None, help="Path to config.toml")
    parser.add_argument("--keystore", type=str, default=None, help="Path to the identity keystore")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Create a new identity")
    init.add_argument("--seed", type=str, default=None, help="Hex seed for a deterministic identity")
    init.set_defaults(handler=_cmd_init)

    show = commands.add_parser("show", help="Show the identity")
    show.set_defaults(handler=_cmd_show)

    encrypt = commands.add_parser("encrypt", help="Encrypt text for a public key")
    encrypt.add_argument("--to", required=True, help="Recipient public key export")
    encrypt.add_argument("text")
    encrypt.set_defaults(handler=_cmd_encrypt)

    decrypt = commands.add_parser("decrypt", help="Decrypt text from a public key")
    decrypt.add_argument("--from", dest="sender", required=True, help="Sender public key export")
    decrypt.add_argument("ciphertext")
    decrypt.set_defaults(handler=_cmd_decrypt)

    send = commands.add_parser("send", help="Send a signed message")
    send.add_argument("recipient")
    send.add_argument("payload")
    send.add_argument("--type", type=int, default=0, help="Message type tag")
    send.set_defaults(handler=_cmd_send)

    messages = commands.add_parser("messages", help="List verified messages")
    messages.add_argument("--all", action="store_true", help="Include processed messages")
    messages.add_argument(
        "--skip-invalid", action="store_true", help="Report and skip messages that fail verification"
    )
    messages.set_defaults(handler=_cmd_messages)

    processed = commands.add_parser("processed", help="Mark a message processed")
    processed.add_argument("message_id")
    processed.add_argument("--unset", action="store_true", help="Mark as unprocessed instead")
    processed.set_defaults(handler=_cmd_processed)

    invite = commands.add_parser("invite", help="Manage pairing invitations")
    invite.add_argument("action", choices=["create", "accept", "resolve", "delete"])
    invite.add_argument("invite_id", nargs="?")
    invite.set_defaults(handler=_cmd_invite)

    trust = commands.add_parser("trust", help="Manage the trust list")
    trust.add_argument("action", choices=["list", "check", "add", "remove"])
    trust.add_argument("address", nargs="?")
    trust.set_defaults(handler=_cmd_trust)

    config_cmd = commands.add_parser("config", help="Configuration helpers")
    config_cmd.add_argument("action", choices=["init"])
    config_cmd.set_defaults(handler=_cmd_config_init)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the sharedmeta command."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(Path(args.config).expanduser() if args.config else None)
        setup_logging(
            "DEBUG" if args.debug else config.get("logging", "level"),
            config.get("logging", "file") or None,
        )
        store = IdentityStore(args.keystore or config.keystore_path)
        return args.handler(args, config, store)
    except SharedMetaError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
