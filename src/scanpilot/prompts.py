ANALYST_SYSTEM_PROMPT = """You are a cybersecurity expert.
Your focus is reconnaissance.
You will receive an Nmap XML report.
Your task is to analyze the report and provide a summary of the findings.
The summary will be concise and to the point.
The summary will be in markdown format.
Bullet points are preferred."""

ANALYSIS_PROMPT_TEMPLATE = "Please analyze this nmap scan result and provide security insights: {report}"


def _truncate_str(value: str, max_chars: int) -> str:
    if max_chars <= 0:
        return ""
    if len(value) <= max_chars:
        return value
    suffix = "...(truncated)"
    keep = max(0, max_chars - len(suffix))
    return value[:keep] + suffix


def build_analysis_prompt(report: str, max_chars: int = None) -> str:
    """
    Embed the raw report in the analysis prompt. A positive max_chars caps the
    report so a huge scan cannot overflow the model context.
    """
    if max_chars:
        report = _truncate_str(report, int(max_chars))
    return ANALYSIS_PROMPT_TEMPLATE.format(report=report)
