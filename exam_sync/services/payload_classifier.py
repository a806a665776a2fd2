"""
Classifies exam result callback bodies into one of the known payload forms.

New forms are added by extending PayloadForm and the branch order below.
"""

import json
from typing import Any, Dict, Optional

from exam_sync.models.results import ClassifiedPayload, PayloadForm

# Checked in this order; appointmentId wins when both are present
IDENTIFIER_FIELDS = ("appointmentId", "examId")

RESULT_FIELDS = ("readings", "clinicianName", "patientName")

HTML_FIELD = "htmlDocument"


def classify_payload(body: bytes) -> ClassifiedPayload:
    """
    Determine the form of a callback body.

    Total over all inputs: anything that is not JSON is Raw-HTML, JSON that
    is not an object or carries none of the known fields is Unrecognized.
    A document with result fields is Full-Result even when it also carries
    an identifier.
    """
    try:
        decoded = json.loads(body)
    except (ValueError, TypeError, RecursionError):
        # JSONDecodeError, UnicodeDecodeError, or nesting too deep to decode
        return ClassifiedPayload(form=PayloadForm.RAW_HTML)

    if not isinstance(decoded, dict):
        return ClassifiedPayload(form=PayloadForm.UNRECOGNIZED)

    external_id = extract_identifier(decoded)

    if any(name in decoded for name in RESULT_FIELDS):
        form = PayloadForm.FULL_RESULT
    elif HTML_FIELD in decoded:
        form = PayloadForm.HTML_WRAPPED
    elif external_id is not None:
        form = PayloadForm.NOTIFICATION
    else:
        form = PayloadForm.UNRECOGNIZED

    return ClassifiedPayload(form=form, external_id=external_id, document=decoded)


def extract_identifier(document: Dict[str, Any]) -> Optional[str]:
    """Return the external appointment or exam id carried by a document."""
    for name in IDENTIFIER_FIELDS:
        value = document.get(name)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def html_summary(body: bytes, document: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Summary for markup payloads: format marker and sizes, never the markup."""
    summary: Dict[str, Any] = {"format": "html", "size": len(body)}
    if document is not None:
        html = document.get(HTML_FIELD)
        if isinstance(html, str):
            summary["htmlSize"] = len(html.encode("utf-8"))
        for name in IDENTIFIER_FIELDS:
            if name in document:
                summary[name] = document[name]
    return summary
