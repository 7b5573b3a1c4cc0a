import threading

import pytest
from flask import current_app

from parallel import parallel


def test_results_are_keyed_by_task_name(app):
    with app.app_context():
        assert parallel(first=lambda: 1, second=lambda: "two") == {"first": 1, "second": "two"}


def test_tasks_run_concurrently(app):
    barrier = threading.Barrier(2, timeout=5)

    def meet():
        # Only returns once both tasks are running at the same time.
        barrier.wait()
        return True

    with app.app_context():
        assert parallel(left=meet, right=meet) == {"left": True, "right": True}


def test_each_task_has_an_app_context(app):
    with app.app_context():
        results = parallel(name=lambda: current_app.name)

    assert results == {"name": app.name}


def test_first_failure_is_raised(app):
    def fail():
        raise LookupError("no such record")

    with app.app_context():
        with pytest.raises(LookupError, match="no such record"):
            parallel(ok=lambda: 1, broken=fail)
