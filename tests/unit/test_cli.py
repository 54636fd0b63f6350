"""
Unit tests for sharedmeta.cli module.

Runs commands through main() with the relay replaced by an in-process one.
"""

import pytest

from sharedmeta import cli
from sharedmeta.identity import Identity
from sharedmeta.protocol import MessageProtocol

SEED_HEX = "00" * 16 + "ff" * 16


@pytest.fixture
def env(temp_dir, relay, clock, monkeypatch):
    """Point the CLI at temp files and the in-process relay."""
    monkeypatch.setenv(cli.PASSWORD_ENV, "cli-password")
    monkeypatch.setattr(
        MessageProtocol,
        "from_config",
        staticmethod(lambda identity, config: MessageProtocol(identity, relay, clock=clock)),
    )
    return ["--config", str(temp_dir / "config.toml"), "--keystore", str(temp_dir / "id.json")]


def run(env, *args):
    return cli.main(env + list(args))


class TestParser:
    """Test argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_send_options(self):
        args = cli.build_parser().parse_args(["send", "b" * 40, "hello", "--type", "3"])
        assert args.recipient == "b" * 40
        assert args.payload == "hello"
        assert args.type == 3

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "sharedmeta" in capsys.readouterr().out


class TestCommands:
    """Test command handlers."""

    def test_init_and_show(self, env, temp_dir, capsys):
        assert run(env, "init", "--seed", SEED_HEX) == 0
        assert (temp_dir / "id.json").exists()

        expected = Identity.from_seed(bytes.fromhex(SEED_HEX)).address
        assert expected in capsys.readouterr().out

        assert run(env, "show") == 0

    def test_init_rejects_non_hex_seed(self, env, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            run(env, "init", "--seed", "not-hex")
        assert "hexadecimal" in str(exc_info.value.code)
        assert not (temp_dir / "id.json").exists()

    def test_init_twice_fails(self, env):
        assert run(env, "init") == 0
        assert run(env, "init") == 1

    def test_show_without_keystore_fails(self, env, capsys):
        assert run(env, "show") == 1
        assert "E501" in capsys.readouterr().out

    def test_wrong_password(self, env, monkeypatch):
        run(env, "init")
        monkeypatch.setenv(cli.PASSWORD_ENV, "other-password")
        assert run(env, "show") == 1

    def test_send_and_list_messages(self, env, relay, bob):
        run(env, "init", "--seed", SEED_HEX)

        assert run(env, "send", bob.address, "hello", "--type", "1") == 0

        (message,) = relay.messages.values()
        assert message["recipient"] == bob.address
        assert message["payload"] == "hello"
        assert message["type"] == 1

    def test_messages_and_processed(self, env, relay, clock, alice):
        run(env, "init", "--seed", SEED_HEX)
        me = Identity.from_seed(bytes.fromhex(SEED_HEX))
        sent = MessageProtocol(alice, relay, clock=clock).send_message(me.address, "hi", 0)

        assert run(env, "messages") == 0
        assert run(env, "processed", sent.id) == 0
        assert relay.messages[sent.id]["processed"] is True

        assert run(env, "processed", sent.id, "--unset") == 0
        assert relay.messages[sent.id]["processed"] is False

    def test_messages_with_invalid_entry(self, env, relay, clock, alice, capsys):
        run(env, "init", "--seed", SEED_HEX)
        me = Identity.from_seed(bytes.fromhex(SEED_HEX))
        sent = MessageProtocol(alice, relay, clock=clock).send_message(me.address, "hi", 0)
        relay.messages[sent.id]["payload"] = "tampered"
        capsys.readouterr()

        assert run(env, "messages") == 1
        assert run(env, "messages", "--skip-invalid") == 0
        assert "Rejected" in capsys.readouterr().out

    def test_encrypt_decrypt(self, env, bob, capsys):
        run(env, "init", "--seed", SEED_HEX)
        me = Identity.from_seed(bytes.fromhex(SEED_HEX))
        ciphertext = MessageProtocol(bob, None).encrypt_for(me.public_key_export, "secret")
        capsys.readouterr()

        assert run(env, "decrypt", "--from", bob.public_key_export, ciphertext) == 0
        assert "secret" in capsys.readouterr().out

        assert run(env, "encrypt", "--to", bob.public_key_export, "hello") == 0

    def test_trust_commands(self, env, relay, bob):
        run(env, "init", "--seed", SEED_HEX)
        me = Identity.from_seed(bytes.fromhex(SEED_HEX))

        assert run(env, "trust", "check", bob.address) == 2
        assert run(env, "trust", "add", bob.address) == 0
        assert relay.trusted[me.address] == {bob.address}
        assert run(env, "trust", "check", bob.address) == 0
        assert run(env, "trust", "list") == 0
        assert run(env, "trust", "remove", bob.address) == 0
        assert relay.trusted[me.address] == set()

    def test_trust_requires_address(self, env):
        run(env, "init")
        with pytest.raises(SystemExit):
            run(env, "trust", "add")

    def test_invite_commands(self, env, relay, clock, bob):
        run(env, "init", "--seed", SEED_HEX)
        me = Identity.from_seed(bytes.fromhex(SEED_HEX))

        assert run(env, "invite", "create") == 0
        (invite_id,) = relay.invitations
        assert relay.invitations[invite_id]["mdid"] == me.address

        MessageProtocol(bob, relay, clock=clock).accept_invitation(invite_id)
        assert run(env, "invite", "resolve", invite_id) == 0
        assert run(env, "invite", "delete", invite_id) == 0
        assert relay.invitations == {}

    def test_resolve_unbound_invitation_fails(self, env, relay):
        run(env, "init")
        run(env, "invite", "create")
        (invite_id,) = relay.invitations
        assert run(env, "invite", "resolve", invite_id) == 1

    def test_config_init(self, env, temp_dir):
        assert run(env, "config", "init") == 0
        assert (temp_dir / "config.toml").exists()

    def test_send_rejects_invalid_address(self, env, relay):
        run(env, "init")
        with pytest.raises(SystemExit):
            run(env, "send", "not-an-address", "hello")
        assert relay.messages == {}
