"""
Shared pytest fixtures.

Usage:
    def test_something(fake_runner, recording_sleep, quiet_log):
        injector = FaultInjector(config, runner=fake_runner,
                                 sleep=recording_sleep, log=quiet_log)

Environment Variables:
    BIN, REPAIR_TESTS_SH, RUST_LOG and DBGTOOLS_LOG_DIR are cleared for every
    test so results do not depend on the developer's shell.
"""

import pytest

from dbgtools.fault_injector import RunConfig
from dbgtools.logger import EventLog
from utilities.helpers import FakeRunner, RecordingSleep

ADVERSARY_BIN = "/opt/adversary/invalidator-client"
REPAIR_SCRIPT = "/opt/adversary/repair-tests.sh"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("BIN", "REPAIR_TESTS_SH", "RUST_LOG", "DBGTOOLS_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def quiet_log():
    log = EventLog(run_id="test_run", console_output=False)
    yield log
    log.close()


@pytest.fixture
def run_config():
    """Two-pass config with a keypair; tweak fields per test."""
    return RunConfig(
        runtime=30,
        sleeptime=10,
        adversary_bin=ADVERSARY_BIN,
        repair_script=REPAIR_SCRIPT,
        iterations=2,
        keypair="adversary.json"
    )
