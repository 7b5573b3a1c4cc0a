"""
Run independent catalog reads concurrently and join on their results.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed

from flask import current_app


def parallel(**tasks):
    """
    Run each zero-argument callable in ``tasks`` on its own thread.

    Every task gets a fresh application context, and so its own database
    session. Relationships the caller will touch afterwards must be loaded
    eagerly by the task.

    Returns:
        dict mapping each task name to its result.

    Raises:
        The exception of the first task to fail. Tasks that have not started
        are cancelled and all other results are discarded.
    """
    app = current_app._get_current_object()
    app.logger.debug("Fetching in parallel: %s", ", ".join(tasks))

    def run(task):
        with app.app_context():
            return task()

    with ThreadPoolExecutor(max_workers=len(tasks) or 1) as pool:
        futures = {pool.submit(run, task): name for name, task in tasks.items()}
        results = {}
        for future in as_completed(futures):
            error = future.exception()
            if error is not None:
                for pending in futures:
                    pending.cancel()
                raise error
            results[futures[future]] = future.result()
    return results
