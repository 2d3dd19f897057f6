import logging
from collections.abc import Iterator

import pytest


@pytest.fixture
def debug_logs(caplog: pytest.LogCaptureFixture) -> Iterator[pytest.LogCaptureFixture]:
    with caplog.at_level(logging.DEBUG, logger="nbtmap"):
        yield caplog
