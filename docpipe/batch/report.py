import dataclasses
import json

from docpipe.batch.models import BatchReport


def report_to_dict(report: BatchReport) -> dict[str, object]:
    """Plain-dict form of a report for JSON output and archiving.

    Stage payloads are left out: the same data is already in each result's output.
    """
    data = dataclasses.asdict(report)
    for outcome in data["results"]:
        result = outcome.get("result")
        if not result:
            continue
        for stage_result in result["stage_results"].values():
            stage_result.pop("payload", None)
    return data


def report_to_json(report: BatchReport, indent: int | None = 2) -> str:
    return json.dumps(report_to_dict(report), indent=indent, ensure_ascii=False, default=str)
