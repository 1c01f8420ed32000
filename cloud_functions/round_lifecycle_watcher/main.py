"""
Cloud Function: Round Lifecycle Watcher

Checks every group's ongoing round against its deadlines and sends
"period about to finish" notifications, or asks the lifecycle controller to
close the round once the evaluation deadline passes.

Triggered: Scheduled (Cloud Scheduler -> Pub/Sub) on WATCHER_CRONTAB_SCHEDULE,
in the ROUNDS_TIMEZONE timezone.

Entry points:
- round_lifecycle_watcher: scheduled CloudEvent trigger
- watcher_trigger_mock: HTTP trigger for local development only
"""


import functions_framework

from rounds.exceptions import WatcherPassError
from rounds.period_watcher import WatcherReport
from rounds.runtime import build_watcher
from shared.config.rounds_config import get_rounds_config
from shared.utils.structured_logging import StructuredLogger, configure_logging

logger = StructuredLogger(__name__)

_logging_configured = False


def _ensure_logging(config) -> None:
    global _logging_configured
    if not _logging_configured:
        configure_logging(
            level=config.logging_level,
            use_cloud_logging=not config.is_development,
            project_id=config.project_id,
        )
        _logging_configured = True


def run_watcher_pass() -> WatcherReport:
    """
    Run one watcher pass over all groups.

    Raises:
        WatcherPassError: After every group was processed, if any of them failed
    """
    config = get_rounds_config()
    _ensure_logging(config)

    report = build_watcher(config).run()

    if report.failures:
        for result in report.failures:
            logger.error(
                f"Group {result.group_id} failed: {type(result.error).__name__}: {result.error}",
                extra={'event_type': 'watcher_group_failed', 'group_id': result.group_id, 'round_id': result.round_id}
            )
        raise WatcherPassError({result.group_id: result.error for result in report.failures})

    return report


@functions_framework.cloud_event
def round_lifecycle_watcher(cloud_event):
    """Cloud Scheduler entry point."""
    config = get_rounds_config()
    logger.info(
        f"Scheduled watcher pass triggered ({config.watcher_schedule}, {config.timezone})",
        extra={'event_type': 'watcher_triggered'}
    )
    report = run_watcher_pass()
    return report.to_dict()


@functions_framework.http
def watcher_trigger_mock(request):
    """
    HTTP entry point for running a watcher pass by hand.

    Only served in the Development environment.
    """
    config = get_rounds_config()
    if not config.is_development:
        return {'status': 'error', 'message': 'Not available outside Development'}, 404

    try:
        report = run_watcher_pass()
    except WatcherPassError as e:
        return {
            'status': 'partial',
            'failed': {group_id: str(error) for group_id, error in e.failures.items()},
        }, 500

    return {'status': 'success', **report.to_dict()}, 200
