from __future__ import annotations

import pytest

from county_cases import cli
from county_cases.common import config_loader
from county_cases.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from county_cases.pipeline.ingest import RunResult


class FakeRuntime:
    def __init__(self, ok: bool) -> None:
        self.ok = ok
        self.closed = False
        self.pipeline = self

    def run(self, run_id=None):
        return RunResult(run_id=run_id or "run-x", ok=self.ok, summary="", records_loaded=0, statuses=())

    def close(self) -> None:
        self.closed = True


@pytest.mark.integration
@pytest.mark.parametrize("ok,expected", [(True, EXIT_SUCCESS), (False, EXIT_PARTIAL)])
def test_run_command_maps_result_to_exit_code(monkeypatch, ok, expected):
    runtime = FakeRuntime(ok)
    monkeypatch.setenv("SUPABASE_HOSTNAME", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setattr(cli, "build_runtime", lambda *_args, **_kwargs: runtime)

    assert cli.run_command(cli.parse_args(["run", "--run-id", "run-smoke"])) == expected
    assert runtime.closed


@pytest.mark.integration
def test_main_returns_hard_fail_without_store_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_HOSTNAME", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    monkeypatch.setattr(config_loader, "load_dotenv", lambda **_kwargs: False)

    assert cli.main(["run", "--no-notify"]) == EXIT_HARD_FAIL
