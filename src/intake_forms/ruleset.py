"""FormRuleStore — loads the intake rule tables from ``rulesets/v1/``.

This is the single source of truth for rule data at runtime.  The store
is loaded once at startup and provides lookup by form type, assessment
id, and medication class.

Usage::

    store = FormRuleStore()          # defaults to the packaged rulesets/v1/
    store.load()                     # parse all YAML files

    form = store.get_form(FormType.BDI)
    bdi = store.assessment_for(FormType.BDI)
    med = store.find_medication(MedicationClass.SSRI, "Sertraline")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from intake_forms.errors import RulesetError
from intake_forms.models.codes import FormType, MedicationClass
from intake_forms.models.schema import (
    AssessmentDefinition,
    FormDefinition,
    Medication,
    clean_medication_name,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def default_ruleset_dir() -> Path:
    """The ``rulesets/v1/`` directory shipped inside this package."""
    return Path(__file__).resolve().parent / "rulesets" / "v1"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _public_keys(raw: dict) -> dict:
    # Top-level keys starting with "_" only hold YAML anchors
    return {k: v for k, v in raw.items() if not str(k).startswith("_")}


# ---------------------------------------------------------------------------
# FormRuleStore
# ---------------------------------------------------------------------------

class FormRuleStore:
    """Loads all YAML from ``rulesets/v1/`` and provides typed lookup.

    Attributes populated after :meth:`load`:

        forms        — dict[FormType, FormDefinition]
        assessments  — dict[assessment id, AssessmentDefinition]
        medications  — dict[MedicationClass, list[Medication]]
    """

    def __init__(self, ruleset_dir: str | Path | None = None) -> None:
        self._base = Path(ruleset_dir) if ruleset_dir else default_ruleset_dir()

        # Populated by load()
        self.forms: dict[FormType, FormDefinition] = {}
        self.assessments: dict[str, AssessmentDefinition] = {}
        self.medications: dict[MedicationClass, list[Medication]] = {}

        # (class, lower-cased cleaned name) -> Medication
        self._medication_index: dict[tuple[MedicationClass, str], Medication] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse every rule table into typed models.

        Call this once at startup.  Raises ``FileNotFoundError`` if the
        directory layout is missing and :class:`RulesetError` if a table is
        malformed or references an unknown assessment.
        """
        self._load_medications()
        self._load_assessments()
        self._load_forms()
        self._check_references()
        logger.info(
            "FormRuleStore loaded: %d forms, %d assessments, %d medications",
            len(self.forms),
            len(self.assessments),
            len(self._medication_index),
        )

    def _load_medications(self) -> None:
        """Load const/medications.yaml, keyed by medication class."""
        raw = load_yaml(self._base / "const" / "medications.yaml")
        for class_name, names in raw.items():
            try:
                med_class = MedicationClass(class_name)
            except ValueError as exc:
                raise RulesetError(f"Unknown medication class: {class_name}") from exc
            entries = [Medication(name=n, medication_class=med_class) for n in names]
            self.medications[med_class] = entries
            for med in entries:
                self._medication_index[(med_class, med.key.lower())] = med

    def _load_assessments(self) -> None:
        """Load assessments/*.yaml, keyed by assessment id."""
        for path in sorted((self._base / "assessments").glob("*.yaml")):
            definition = self._parse(AssessmentDefinition, path)
            indices = [q.index for q in definition.questions]
            if indices != list(range(len(indices))):
                raise RulesetError(
                    f"{path.name}: question indices must run 0..{len(indices) - 1}"
                )
            self.assessments[definition.id] = definition

    def _load_forms(self) -> None:
        """Load forms/*.yaml, keyed by form type."""
        for path in sorted((self._base / "forms").glob("*.yaml")):
            definition = self._parse(FormDefinition, path)
            self.forms[definition.form_type] = definition

    def _check_references(self) -> None:
        """Every form type is defined and every section / assessment it names exists."""
        missing = [ft.value for ft in FormType if ft not in self.forms]
        if missing:
            raise RulesetError(f"No rule table for form types: {', '.join(missing)}")

        for form in self.forms.values():
            sections = set(form.section_order())
            for name, section in [(f.name, f.section) for f in form.fields] + [
                (c.field, c.section) for c in form.checks
            ]:
                if section not in sections:
                    raise RulesetError(
                        f"{form.form_type.value}: field {name} names unknown section {section}"
                    )
            for check in form.checks:
                if check.type == "assessment" and check.assessment not in self.assessments:
                    raise RulesetError(
                        f"{form.form_type.value}: unknown assessment {check.assessment}"
                    )

    @staticmethod
    def _parse(model: type, path: Path) -> Any:
        raw = load_yaml(path)
        try:
            return model.model_validate(_public_keys(raw))
        except ValidationError as exc:
            raise RulesetError(f"Invalid rule table {path.name}: {exc}") from exc

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get_form(self, form_type: FormType | str) -> FormDefinition:
        """Return the rule table for a form type.

        Raises ``KeyError`` for unknown form types.
        """
        return self.forms[FormType(form_type)]

    def get_assessment(self, assessment_id: str) -> AssessmentDefinition:
        return self.assessments[assessment_id]

    def assessment_for(self, form_type: FormType | str) -> AssessmentDefinition | None:
        """The scored assessment attached to a form, if it has one."""
        for check in self.get_form(form_type).checks:
            if check.type == "assessment" and check.assessment:
                return self.assessments[check.assessment]
        return None

    def find_medication(
        self, med_class: MedicationClass | str, name: str,
    ) -> Medication | None:
        """Look up a catalog entry by printed label or cleaned name.

        Matching ignores case and the parenthesised brand names, so
        ``"Sertraline (Zoloft)"`` and ``"sertraline"`` find the same entry.
        Returns ``None`` for unknown classes or names.
        """
        try:
            med_class = MedicationClass(med_class)
        except ValueError:
            return None
        key = clean_medication_name(name).lower()
        return self._medication_index.get((med_class, key))
