"""DocumentRenderer — Jinja2 HTML documents for emailed form submissions.

One generic document template walks the form's rule table (sections and
fields, then any assessment, medication or condition group) so every form
type renders without a per-form template.  Contact requests use their own
email template, and ``summary.html.jinja2`` is the plain fallback used when
the PDF cannot be produced or attached.

PDF conversion goes through WeasyPrint, imported on first use since it
pulls in native libraries.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import jinja2

from intake_forms.models.codes import FormType
from intake_forms.models.schema import FormDefinition, GroupCheck
from intake_forms.ruleset import FormRuleStore
from intake_forms.validators import is_blank, is_selected, normalize_responses, parse_date

NOT_PROVIDED = "Not provided"

# --- Key lines shown in the fallback summary, per form type ---
_SUMMARY_FIELDS: dict[FormType, list[tuple[str, str]]] = {
    FormType.PATIENT_DEMOGRAPHICS: [
        ("Name", "fullLegalName"), ("Email", "email"), ("Phone", "phone"),
    ],
    FormType.MEDICAL_HISTORY: [("Allergies", "allergies")],
    FormType.PRE_CERT_MED_LIST: [("Name", "name"), ("Date of Birth", "dateOfBirth")],
    FormType.CONTACT: [("Name", "name"), ("Email", "email"), ("Preferred Date", "date")],
}


def display_value(value: Any) -> str:
    """Human-readable cell text for a raw field value."""
    if is_blank(value):
        return NOT_PROVIDED
    if value is True:
        return "Yes"
    if value is False:
        return "No"
    if isinstance(value, (date, datetime)):
        return long_date(value)
    return str(value).strip()


def long_date(value: Any) -> str:
    """``2026-10-19`` -> ``Monday, October 19, 2026``; unparseable text is echoed."""
    parsed = parse_date(value)
    if parsed is None:
        return display_value(value)
    return f"{parsed:%A, %B} {parsed.day}, {parsed.year}"


class DocumentRenderer:
    """Renders submission documents from the loaded rule tables.

    Args:
        store: a loaded :class:`FormRuleStore`.
        template_dir: optional override; defaults to ``template/`` beside
            this module.
    """

    def __init__(self, store: FormRuleStore, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._store = store
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            # Form values are user input
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["long_date"] = long_date
        self._env.filters["display"] = display_value

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render_document(
        self,
        form_type: FormType,
        form_data: Mapping[str, Any],
        *,
        submitted_at: datetime | None = None,
    ) -> str:
        """Full HTML document for the PDF attachment."""
        form = self._store.get_form(form_type)
        context = {
            "title": form_type.display_name,
            "form_title": form.title,
            "submitted_at": submitted_at or datetime.now(timezone.utc),
            "sections": self._field_sections(form, form_data),
            "groups": [self._group(group, form_data) for group in form.checks],
        }
        return self._env.get_template("document.html.jinja2").render(**context)

    def render_notice(self, form_type: FormType) -> str:
        """Short email body accompanying the PDF attachment."""
        return self._env.get_template("notice.html.jinja2").render(
            title=form_type.display_name,
        )

    def render_summary(self, form_type: FormType, form_data: Mapping[str, Any]) -> str:
        """Plain summary for the fallback email (no attachment)."""
        lines = [
            (label, display_value(form_data.get(name)))
            for label, name in _SUMMARY_FIELDS.get(form_type, [])
        ]
        if form_type.is_assessment:
            total = form_data.get("totalScore")
            lines.append(("Total Score", display_value(total) if total is not None else "N/A"))
            if form_data.get("severity"):
                lines.append(("Severity", str(form_data["severity"])))
            lines.append(("Assessment Date", long_date(date.today())))
        elif form_type is FormType.MEDICAL_HISTORY:
            codes = self._selected_conditions(form_data.get("medicalConditions"))
            lines.insert(0, ("Medical Conditions", ", ".join(codes) or "None"))
        elif form_type is FormType.PRE_CERT_MED_LIST:
            names = [m["name"] for m in self._selected_medications(form_data.get("medications"))]
            lines.append(("Selected Medications", ", ".join(names) or "None"))

        return self._env.get_template("summary.html.jinja2").render(
            title=form_type.display_name, lines=lines,
        )

    def render_contact(
        self,
        form_data: Mapping[str, Any],
        *,
        source: str = "Contact Form",
        submitted_at: datetime | None = None,
    ) -> str:
        """HTML body of the consultation-request email."""
        return self._env.get_template("contact.html.jinja2").render(
            title="New Message Submission",
            name=display_value(form_data.get("name")),
            email=str(form_data.get("email") or "").strip(),
            preferred_date=(
                long_date(form_data.get("date"))
                if not is_blank(form_data.get("date")) else "Not specified"
            ),
            consultation_type=display_value(form_data.get("consultationType")),
            message=form_data.get("message") or "",
            submitted_at=submitted_at or datetime.now(timezone.utc),
            source=source,
        )

    @staticmethod
    def render_pdf(html: str) -> bytes:
        """Convert an HTML document to PDF bytes (blocking; run in a thread)."""
        from weasyprint import HTML

        return HTML(string=html).write_pdf()

    # ------------------------------------------------------------------
    # Context builders
    # ------------------------------------------------------------------

    @staticmethod
    def _field_sections(
        form: FormDefinition, form_data: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        sections = []
        for section in form.sections:
            rows = [
                (field.label, display_value(form_data.get(field.name)))
                for field in form.fields
                if field.section == section.id
            ]
            if rows:
                sections.append({"title": section.title, "rows": rows})
        return sections

    def _group(self, group: GroupCheck, form_data: Mapping[str, Any]) -> dict[str, Any]:
        value = form_data.get(group.field)
        if group.type == "assessment":
            return self._assessment(group, form_data)
        if group.type == "medication_list":
            return {
                "type": group.type,
                "title": group.label,
                "medications": self._selected_medications(value),
            }
        return {
            "type": group.type,
            "title": group.label,
            "conditions": self._selected_conditions(value),
        }

    def _assessment(self, group: GroupCheck, form_data: Mapping[str, Any]) -> dict[str, Any]:
        definition = self._store.get_assessment(group.assessment)
        responses = normalize_responses(form_data.get(group.field))
        items = []
        for question in definition.questions:
            code = responses.get(question.index)
            labels = {o.code: o.label for o in question.options}
            items.append({
                "number": question.index + 1,
                "title": question.title,
                "code": code,
                "answer": labels.get(code, NOT_PROVIDED) if code else NOT_PROVIDED,
            })
        return {
            "type": group.type,
            "title": definition.title,
            "items": items,
            "total_score": form_data.get("totalScore"),
            "max_score": form_data.get("maxScore", definition.max_score),
            "severity": form_data.get("severity"),
        }

    def _selected_medications(self, medications: Any) -> list[dict[str, str]]:
        selected: list[dict[str, str]] = []
        if not isinstance(medications, Mapping):
            return selected
        for class_name, per_class in medications.items():
            if not isinstance(per_class, Mapping):
                continue
            for med_name, entry in per_class.items():
                if not is_selected(entry):
                    continue
                med = self._store.find_medication(class_name, med_name)
                details = entry if isinstance(entry, Mapping) else {}
                selected.append({
                    "medication_class": str(class_name),
                    "name": med.name if med else str(med_name),
                    "dosage": display_value(details.get("dosage") or details.get("dose")),
                    "start_date": display_value(details.get("startDate")),
                    "end_date": display_value(details.get("endDate")),
                    "reason": display_value(details.get("reasonForDiscontinuing")),
                })
        return selected

    @staticmethod
    def _selected_conditions(conditions: Any) -> list[str]:
        if not isinstance(conditions, Mapping):
            return []
        return [str(code) for code, entry in conditions.items() if is_selected(entry)]
