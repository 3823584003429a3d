"""Tests for the scenario publishing script."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from scripts.publish_scenario import build_scenario_body, main
from src.config.settings import Settings


class TestBuildScenarioBody:
    """Compiling bundled scenarios into create bodies."""

    def test_marcus_body(self) -> None:
        """Marcus compiles to seven nodes and six edges."""
        body = build_scenario_body("marcus_johnson", "en")
        assert body["name"] == "Marcus Johnson"
        assert len(body["workflow"]["nodes"]) == 7
        assert len(body["workflow"]["edges"]) == 6
        assert body["conversation_config"]["agent"]["language"] == "en"

    def test_sarah_body_has_no_hidden_block(self) -> None:
        """A scenario without diagnosis omits the hidden section."""
        body = build_scenario_body("sarah_chen", "en")
        prompt = body["conversation_config"]["agent"]["prompt"]["prompt"]
        assert "HIDDEN" not in prompt


class TestMain:
    """Command-line entry point."""

    async def test_dry_run_prints_body(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        settings: Settings,
    ) -> None:
        """--dry-run prints the compiled body and sends nothing."""
        monkeypatch.setattr("sys.argv", ["publish", "sarah_chen", "--dry-run"])
        with (
            patch("scripts.publish_scenario.get_settings", return_value=settings),
            patch("scripts.publish_scenario.ElevenLabsClient") as mock_cls,
        ):
            await main()

        out = capsys.readouterr().out
        assert "Compiled 'sarah_chen': 4 nodes, 3 edges" in out
        body = json.loads(out[out.index("{"):])
        assert body["name"] == "Sarah Chen"
        mock_cls.assert_not_called()

    async def test_creates_agent(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        settings: Settings,
    ) -> None:
        """Without --dry-run the agent is created."""
        monkeypatch.setattr("sys.argv", ["publish", "marcus_johnson"])
        with (
            patch("scripts.publish_scenario.get_settings", return_value=settings),
            patch("scripts.publish_scenario.ElevenLabsClient") as mock_cls,
        ):
            mock_cls.return_value.create_agent = AsyncMock(
                return_value={"agent_id": "agent-new"},
            )
            await main()

        assert "Created agent agent-new" in capsys.readouterr().out

    async def test_unknown_scenario_exits(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Unknown scenarios exit with status 1."""
        monkeypatch.setattr("sys.argv", ["publish", "nobody"])
        with pytest.raises(SystemExit) as exc_info:
            await main()
        assert exc_info.value.code == 1
