from __future__ import annotations

from ..models.processing_result import RunResult

"""SUMMARY line rendering.

Format:
SUMMARY files={n}/{n} success={success} failed={failed} sheets_ok={ok}
sheets_failed={failed} rows={total} inserted={inserted} failed_rows={failed_rows}
elapsed_sec={elapsed} throughput_rps={throughput}
(single line)
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> render_summary_line(RunResult(files=[], start_time=t, end_time=t, elapsed_seconds=0.0))
        'SUMMARY files=0/0 success=0 failed=0 sheets_ok=0 sheets_failed=0 rows=0 inserted=0 failed_rows=0 elapsed_sec=0 throughput_rps=0'
    """
    total_files = len(result.files)
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"sheets_ok={result.sheets_ok} "
        f"sheets_failed={result.sheets_failed} "
        f"rows={result.total_rows} "
        f"inserted={result.inserted_rows} "
        f"failed_rows={result.failed_rows} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)}"
    )
