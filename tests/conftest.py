"""Shared test fixtures and configuration.

Keeps every test away from the real per-user config and log directories.
"""

from __future__ import annotations

import logging
from datetime import date
from unittest.mock import patch

import pytest

from chors.services.task_store import TaskStore

TODAY = date(2024, 5, 15)


# ---------------------------------------------------------------------------
# Filesystem isolation
# ---------------------------------------------------------------------------


def _reset_logger():
    import chors.utils.logger as logger_mod

    existing = logging.getLogger("chors")
    for handler in existing.handlers:
        handler.close()
    existing.handlers.clear()
    logger_mod._logger = None


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path):
    """Patch platformdirs lookups into *tmp_path* and reset cached singletons."""
    from chors.services.config_service import get_config_service

    _reset_logger()
    get_config_service.cache_clear()
    with patch("chors.utils.logger.user_log_dir", return_value=str(tmp_path / "logs")):
        with patch(
            "chors.services.config_service.user_config_dir",
            return_value=str(tmp_path / "config"),
        ):
            yield tmp_path
    _reset_logger()
    get_config_service.cache_clear()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def store() -> TaskStore:
    """A small forest::

        1 Inbox
          2 Buy milk @shop
          3 Call mum @phone #family
        4 Work #job
          5 Report
            6 Draft
    """
    s = TaskStore()
    inbox = s.create(None, "Inbox")
    s.create(inbox, "Buy milk @shop")
    s.create(inbox, "Call mum @phone #family")
    work = s.create(None, "Work #job")
    report = s.create(work, "Report")
    s.create(report, "Draft")
    return s
