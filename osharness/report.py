"""Rendering of run reports for logs and machine-readable output."""

import logging
from typing import Any

from osharness.models.result import ResultNode, RunReport

OUTCOME_SYMBOLS = {
    "pass": "✓",
    "fail": "✗",
    "skip": "-",
    "exclude": "·",
}


def log_results_summary(log: logging.Logger, report: RunReport) -> None:
    """Log a formatted summary of test results, detailing failed sub-tests."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for result in report.results:
        symbol = OUTCOME_SYMBOLS.get(result.outcome, "?")
        log.info(
            "%s %s: %s (%.2fs)", symbol, result.name, result.outcome, result.duration
        )
        if result.failed:
            for path, node in result.walk():
                if node.failed and node.message:
                    log.info("  %s: %s", path, node.message)
        elif result.message:
            log.info("  Reason: %s", result.message)

    if report.warnings:
        log.warning("Warnings (machines may have leaked):")
        for name, warning in report.warnings:
            log.warning("  %s: %s", name, warning)

    log.info(
        "Passed: %d, Failed: %d, Skipped: %d, Excluded: %d",
        report.count("pass"),
        report.count("fail"),
        report.count("skip"),
        report.count("exclude"),
    )


def format_node(node: ResultNode) -> dict[str, Any]:
    """Format a result node and its sub-tests for JSON output."""
    return {
        "name": node.name,
        "outcome": node.outcome,
        "duration": node.duration,
        "message": node.message,
        "warnings": list(node.warnings),
        "subtests": [format_node(child) for child in node.children],
    }


def format_output(report: RunReport) -> dict[str, Any]:
    """Format a run report for JSON output."""
    return {
        "total": len(report.results),
        "passed": report.count("pass"),
        "failed": report.count("fail"),
        "skipped": report.count("skip"),
        "excluded": report.count("exclude"),
        "warnings": [
            {"test": name, "warning": warning} for name, warning in report.warnings
        ],
        "results": [format_node(result) for result in report.results],
    }
