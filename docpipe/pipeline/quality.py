from docpipe.pipeline.models import FormattedResult


def summary_score(summary: str) -> float:
    length = len(summary)
    if 50 <= length < 1000:
        return 0.8
    if length >= 20:
        return 0.6
    return 0.3


def data_completeness_score(data: dict[str, object]) -> float:
    if len(data) > 5:
        return 0.9
    if len(data) > 2:
        return 0.7
    return 0.4


def processing_time_score(total_ms: float) -> float:
    if total_ms < 10_000:
        return 0.8
    if total_ms < 30_000:
        return 0.6
    return 0.3


def quality_score(formatted: FormattedResult) -> float:
    """Unweighted mean of the quality factors available for one run, in [0, 1].

    Classification confidence, summary and extracted data only count when
    present; processing time always counts.
    """
    factors: list[float] = []
    if formatted.classification.confidence > 0:
        factors.append(formatted.classification.confidence)
    if formatted.analysis.summary:
        factors.append(summary_score(formatted.analysis.summary))
    if formatted.analysis.extracted_data is not None:
        factors.append(data_completeness_score(formatted.analysis.extracted_data))
    factors.append(processing_time_score(sum(formatted.performance.values())))
    return max(0.0, min(1.0, sum(factors) / len(factors)))
