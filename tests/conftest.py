import os

# keep test runs from creating a logs/ directory
os.environ.setdefault("LOG_DIR", "")

import datetime as dt

import pytest

from releasenotes.models import PullRequestRecord


@pytest.fixture
def make_pr():
    def _make(number: int, title: str = None, **kwargs) -> PullRequestRecord:
        data = {
            "number": number,
            "title": title if title is not None else f"PR {number}",
            "html_url": f"https://github.com/o/r/pull/{number}",
            "created_at": dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc) + dt.timedelta(days=number),
            "merged_at": dt.datetime(2024, 2, 1, tzinfo=dt.timezone.utc) + dt.timedelta(days=number),
            "author": "octocat",
            "status": "merged",
        }
        data.update(kwargs)
        return PullRequestRecord(**data)

    return _make
