"""
Tests for the command line entry point.
"""
import json
from datetime import datetime, timezone
from typing import Iterator
from unittest.mock import AsyncMock, Mock, patch

import pytest

from qbo_sync import cli
from qbo_sync.core.settings import Settings
from qbo_sync.domains.external_accounting.base.models import (
    EntitySyncCount,
    SyncResult,
)
from qbo_sync.domains.external_accounting.quickbooks.auth.models import (
    QboTokenExchangeResult,
)
from qbo_sync.shared.exceptions import ConfigurationError, IntegrationTokenExpiredError
from tests.fixtures.qbo_fixtures import TEST_REALM_ID, TEST_TENANT_ID


def _sync_result(mode: str) -> SyncResult:
    return SyncResult(
        mode=mode,
        tenant_id=TEST_TENANT_ID,
        realm_id=TEST_REALM_ID,
        entities=[EntitySyncCount(entity_type="Invoice", fetched=2, upserted=2)],
    )


class TestParser:
    def test_sync_arguments(self) -> None:
        args = cli.build_parser().parse_args(
            [
                "sync",
                "--mode",
                "cdc",
                "--since",
                "2024-01-01T00:00:00Z",
                "--entities",
                "Invoice",
            ]
        )

        assert args.command == "sync"
        assert args.mode == "cdc"
        assert args.since == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert args.entities == "Invoice"

    def test_auth_exchange_arguments(self) -> None:
        args = cli.build_parser().parse_args(
            ["auth-exchange", "--code", "abc", "--realmId", TEST_REALM_ID]
        )

        assert args.code == "abc"
        assert args.realm_id == TEST_REALM_ID

    @pytest.mark.parametrize(
        "argv",
        [
            ["sync", "--mode", "weekly"],
            ["sync", "--mode", "cdc", "--since", "last tuesday"],
            ["auth-exchange", "--code", "abc"],
            [],
        ],
    )
    def test_invalid_arguments_exit(self, argv: list) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(argv)

        assert exc_info.value.code == 2


class TestMain:
    def test_sync_success_prints_result(self, capsys: pytest.CaptureFixture) -> None:
        with patch.object(
            cli, "run_sync", new=AsyncMock(return_value=_sync_result("full"))
        ) as mock_run:
            exit_code = cli.main(["sync", "--mode", "full", "--entities", "Invoice"])

        assert exit_code == 0
        mock_run.assert_awaited_once_with("full", None, "Invoice")
        output = json.loads(capsys.readouterr().out)
        assert output["mode"] == "full"
        assert output["entities"][0]["upserted"] == 2

    def test_sync_failure_returns_non_zero(self) -> None:
        with patch.object(
            cli,
            "run_sync",
            new=AsyncMock(side_effect=IntegrationTokenExpiredError("Refresh failed")),
        ):
            exit_code = cli.main(["sync", "--mode", "cdc"])

        assert exit_code == 1

    def test_auth_url_prints_url(self, capsys: pytest.CaptureFixture) -> None:
        with patch.object(cli, "QuickBooksAuthService") as mock_service:
            mock_service.return_value.build_authorization_url.return_value = (
                "https://appcenter.intuit.com/connect/oauth2?state=qbo-sync"
            )

            exit_code = cli.main(["auth-url"])

        assert exit_code == 0
        assert "appcenter.intuit.com" in capsys.readouterr().out

    def test_auth_url_missing_config(self) -> None:
        with patch.object(cli, "QuickBooksAuthService") as mock_service:
            mock_service.return_value.build_authorization_url.side_effect = (
                ConfigurationError("Missing required environment variable(s): X")
            )

            assert cli.main(["auth-url"]) == 1

    def test_auth_exchange_prints_tokens(self, capsys: pytest.CaptureFixture) -> None:
        with patch.object(cli, "QuickBooksAuthService") as mock_service:
            mock_service.return_value.exchange_authorization_code = AsyncMock(
                return_value=QboTokenExchangeResult(
                    realm_id=TEST_REALM_ID, token={"refresh_token": "new-refresh"}
                )
            )

            exit_code = cli.main(
                ["auth-exchange", "--code", "abc", "--realmId", TEST_REALM_ID]
            )

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output == {"realmId": TEST_REALM_ID, "refresh_token": "new-refresh"}

    def test_invalid_log_level_returns_non_zero(
        self, test_settings: Settings
    ) -> None:
        test_settings.LOG_LEVEL = "LOUD"

        with patch.object(cli, "settings", test_settings), patch.object(
            cli, "QuickBooksAuthService"
        ) as mock_service:
            exit_code = cli.main(["auth-url"])

        assert exit_code == 1
        mock_service.assert_not_called()


class TestRunSync:
    @pytest.fixture(autouse=True)
    def configured(self, test_settings: Settings) -> Iterator[Settings]:
        with patch.object(cli, "settings", test_settings):
            yield test_settings

    @pytest.fixture
    def db(self) -> Mock:
        db = Mock()
        db.connect = AsyncMock()
        db.disconnect = AsyncMock()
        db.is_connected = Mock(return_value=True)
        return db

    @pytest.mark.asyncio
    async def test_disconnects_after_failure(self, db: Mock) -> None:
        with patch.object(cli, "create_client", return_value=db), patch.object(
            cli, "SyncOrchestrator"
        ) as mock_orchestrator:
            mock_orchestrator.return_value.sync_full = AsyncMock(
                side_effect=RuntimeError("boom")
            )

            with pytest.raises(RuntimeError):
                await cli.run_sync("full", None, None)

        db.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cdc_passes_since(self, db: Mock) -> None:
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)

        with patch.object(cli, "create_client", return_value=db), patch.object(
            cli, "SyncOrchestrator"
        ) as mock_orchestrator:
            mock_orchestrator.return_value.sync_cdc = AsyncMock(
                return_value=_sync_result("cdc")
            )

            result = await cli.run_sync("cdc", since, "Invoice")

        assert result.mode == "cdc"
        mock_orchestrator.return_value.sync_cdc.assert_awaited_once_with(
            since=since, entities_csv="Invoice"
        )
        db.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "missing", ["EZCR_TENANT_ID", "QBO_REALM_ID", "QBO_REFRESH_TOKEN"]
    )
    async def test_missing_sync_setting_fails_before_connecting(
        self, configured: Settings, missing: str
    ) -> None:
        setattr(configured, missing, None)

        with patch.object(cli, "create_client") as mock_create_client:
            with pytest.raises(ConfigurationError) as exc_info:
                await cli.run_sync("full", None, None)

        assert missing in exc_info.value.detail
        mock_create_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_status_missing_tenant_fails_before_connecting(
        self, configured: Settings
    ) -> None:
        configured.EZCR_TENANT_ID = None

        with patch.object(cli, "create_client") as mock_create_client:
            with pytest.raises(ConfigurationError):
                await cli.run_status()

        mock_create_client.assert_not_called()
