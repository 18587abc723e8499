# Tests for the authgate command line.
# Created: 2026-09-14

from datetime import timedelta

import pytest

from authgate.__main__ import main
from authgate.oauth2.models import utcnow


@pytest.fixture(autouse=True)
def _patched_server(server, monkeypatch):
    import authgate.oauth2.server as mod

    monkeypatch.setattr(mod, "_server", server)


class TestCli:
    def test_create_and_list_clients(self, server, capsys):
        rc = main(
            [
                "create-client",
                "--name",
                "Dashboard",
                "--redirect-uri",
                "https://dash.example/cb",
                "--grant-type",
                "authorization_code",
                "--grant-type",
                "refresh_token",
                "--scope",
                "openid",
            ]
        )
        assert rc == 0
        out = capsys.readouterr().out
        assert '"client_secret"' in out

        [client] = server.clients.list_clients()
        assert client.name == "Dashboard"
        assert client.grant_types == ["authorization_code", "refresh_token"]
        assert client.allowed_scopes == ["openid"]

        assert main(["list-clients"]) == 0
        assert client.client_id in capsys.readouterr().out

    def test_create_client_unknown_grant(self, capsys):
        rc = main(
            [
                "create-client",
                "--name",
                "Legacy",
                "--redirect-uri",
                "https://legacy.example/cb",
                "--grant-type",
                "password",
            ]
        )
        assert rc == 2
        assert "password" in capsys.readouterr().err

    def test_public_client(self, server):
        main(
            [
                "create-client",
                "--name",
                "SPA",
                "--redirect-uri",
                "https://spa.example/cb",
                "--grant-type",
                "authorization_code",
                "--public",
            ]
        )
        [client] = server.clients.list_clients()
        assert client.confidential is False

    def test_delete_client(self, server, web_client, capsys):
        assert main(["delete-client", web_client["client_id"]]) == 0
        assert server.clients.list_clients() == []
        assert main(["delete-client", "nope"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_list_empty(self, capsys):
        assert main(["list-clients", "--active"]) == 0
        assert "No clients registered." in capsys.readouterr().out

    def test_create_user(self, server, capsys):
        rc = main(
            [
                "create-user",
                "--email",
                "ops@example.com",
                "--username",
                "ops",
                "--password",
                "hunter22",
                "--role",
                "ROLE_ADMIN",
            ]
        )
        assert rc == 0
        user = server.storage.users.find_by_username("ops")
        assert user.get_roles() == ["ROLE_ADMIN", "ROLE_USER"]
        assert server.hasher.verify(user.password_hash, "hunter22")

    def test_create_user_duplicate(self, user, capsys):
        rc = main(
            ["create-user", "--email", "x@example.com", "--username", "alice", "--password", "pw"]
        )
        assert rc == 1
        assert "already taken" in capsys.readouterr().err

    def test_cleanup_expired_tokens(self, server, web_client, capsys):
        client = server.storage.clients.find_by_client_id(web_client["client_id"])
        token = server.access_tokens.create(client, ["openid"])
        token.expires_at = utcnow() - timedelta(seconds=1)

        assert main(["cleanup-expired-tokens"]) == 0
        assert "Removed 1 access tokens" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "authgate" in capsys.readouterr().out

    def test_subcommand_required(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
