"""
CSV generation for templates.

Builds downloadable template files and seeded sample data. Output is
deterministic: the same template (and seed) always gives the same text.
"""

import random
from typing import Optional

import structlog

from services.template_catalog import TemplateCatalog, get_template_catalog

logger = structlog.get_logger(__name__)

MIN_SAMPLE_COUNT = 1
MAX_SAMPLE_COUNT = 100

_QUOTE_TRIGGERS = (",", '"', "\n", "\r")

SAMPLE_COMPANIES = [
    "Google", "Microsoft", "Apple", "Amazon", "Meta", "Netflix", "Tesla",
    "Spotify", "Uber", "Airbnb", "Stripe", "Shopify", "Slack", "Zoom",
    "Dropbox", "Salesforce", "Adobe", "Nvidia", "Intel", "AMD",
]
SAMPLE_POSITIONS = [
    "Software Engineer", "Frontend Developer", "Backend Developer",
    "Full Stack Developer", "Data Scientist", "Product Manager",
    "UX Designer", "DevOps Engineer", "Mobile Developer", "QA Engineer",
    "Software Engineer Intern", "Data Analyst", "Machine Learning Engineer",
]
SAMPLE_LOCATIONS = [
    "San Francisco, CA", "New York, NY", "Seattle, WA", "Austin, TX",
    "Boston, MA", "Remote", "London, UK", "Berlin, Germany",
    "Stockholm, Sweden", "Amsterdam, Netherlands",
]
SAMPLE_STATUSES = ["Applied", "Pending", "Interviewing", "Offer", "Rejected"]
SAMPLE_TYPES = ["Full-time", "Part-time", "Internship", "Contract"]
SAMPLE_PRIORITIES = ["Low", "Medium", "High"]

_DATE_FIELDS = {
    "appliedDate", "responseDate", "interviewDate", "offerDate",
    "rejectionDate", "followUpDate",
}


def escape_cell(value: Optional[str]) -> str:
    """
    Quote a cell when it contains a comma, a quote or a line break.

    Internal quotes are doubled: a "b" c is written as "a ""b"" c".
    """
    text = "" if value is None else str(value)
    if any(trigger in text for trigger in _QUOTE_TRIGGERS):
        return '"' + text.replace('"', '""') + '"'
    return text


def _join(rows: list[list[str]]) -> str:
    return "\n".join(",".join(escape_cell(cell) for cell in row) for row in rows)


def generate_template_csv(
    template_id: str,
    include_examples: bool = False,
    catalog: Optional[TemplateCatalog] = None,
) -> str:
    """
    Header row of a template, optionally followed by its sample rows.

    Raises:
        TemplateNotFoundError: If template_id is not in the catalog
    """
    template = (catalog or get_template_catalog()).require(template_id)
    rows = [template.headers]
    if include_examples:
        rows.extend(list(row) for row in template.sample_rows)
    return _join(rows)


def _sample_value(field: str, rng: random.Random) -> str:
    if field == "company":
        return rng.choice(SAMPLE_COMPANIES)
    if field == "position":
        return rng.choice(SAMPLE_POSITIONS)
    if field == "location":
        return rng.choice(SAMPLE_LOCATIONS)
    if field == "status":
        return rng.choice(SAMPLE_STATUSES)
    if field == "type":
        return rng.choice(SAMPLE_TYPES)
    if field == "priority":
        return rng.choice(SAMPLE_PRIORITIES)
    if field == "salary":
        return f"${rng.randint(60, 180) * 1000:,}"
    if field in _DATE_FIELDS:
        return f"2024-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}"
    if field == "contactEmail":
        return f"recruiter{rng.randint(1, 999)}@example.com"
    if field == "contactPhone":
        return f"+1 555 {rng.randint(100, 999)} {rng.randint(1000, 9999)}"
    if field in ("website", "companyWebsite", "jobUrl"):
        return f"https://example.com/jobs/{rng.randint(1000, 9999)}"
    if field == "tags":
        return ";".join(rng.sample(["Remote", "Startup", "Backend", "Frontend", "Data"], 2))
    return f"Sample {field}"


def generate_sample_data(
    template_id: str,
    count: int = 10,
    seed: Optional[int] = None,
    catalog: Optional[TemplateCatalog] = None,
) -> list[dict[str, str]]:
    """
    Generate sample rows keyed by template column.

    count is clamped to 1..100. A fixed seed gives identical output.

    Raises:
        TemplateNotFoundError: If template_id is not in the catalog
    """
    template = (catalog or get_template_catalog()).require(template_id)
    count = max(MIN_SAMPLE_COUNT, min(MAX_SAMPLE_COUNT, count))
    rng = random.Random(seed)

    rows = [
        {m.csv_column: _sample_value(m.canonical_field, rng) for m in template.field_mappings}
        for _ in range(count)
    ]
    logger.debug("sample_data_generated", template_id=template_id, count=count)
    return rows


def sample_data_to_csv(headers: list[str], rows: list[dict[str, str]]) -> str:
    """Serialize sample rows with the same quoting rule as template CSVs."""
    return _join([headers] + [[row.get(h, "") for h in headers] for row in rows])
