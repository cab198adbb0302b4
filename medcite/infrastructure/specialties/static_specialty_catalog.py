"""Built-in specialty knowledge texts.

Each text is a markdown section appended to the base instructions. Bullet
items and Capitalized words double as the specialty's key terms when
deciding whether a question already speaks the specialty's language.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from medcite.application.ports.specialty_catalog_port import SpecialtyCatalogPort

FALLBACK_SPECIALTY = "other"


def _section(title: str, intro: str, focus: list[str], guidelines: list[str]) -> str:
    lines = [f"## {title.upper()} SPECIALTY KNOWLEDGE", intro, "", "Key areas to emphasize:"]
    lines += [f"- {item}" for item in focus]
    if guidelines:
        lines += ["", "Be familiar with the major guidelines, including:"]
        lines += [f"- {item}" for item in guidelines]
    return "\n".join(lines)


SPECIALTY_TEXTS: Mapping[str, str] = MappingProxyType(
    {
        "internal_medicine": _section(
            "Internal Medicine",
            "Focus on prevention, diagnosis and treatment of disease in adults.",
            [
                "Multi-system disease processes and their interactions",
                "Preventive care and screening recommendations",
                "Interpretation of laboratory and diagnostic results",
                "Medication management and polypharmacy",
                "Hypertension, diabetes and other chronic conditions",
            ],
            ["ACP clinical guidelines", "USPSTF screening recommendations", "ADA Standards of Care"],
        ),
        "cardiology": _section(
            "Cardiology",
            "Focus on disorders of the heart and the vascular system.",
            [
                "Acute coronary syndromes and chest pain evaluation",
                "Heart failure staging and therapy",
                "Arrhythmia recognition and management",
                "Interpretation of ECG and echocardiography",
                "Cardiovascular risk stratification",
            ],
            ["ACC/AHA guidelines", "ESC guidelines"],
        ),
        "pediatrics": _section(
            "Pediatrics",
            "Focus on the health of infants, children and adolescents.",
            [
                "Growth and developmental milestones",
                "Weight-based dosing and pediatric pharmacology",
                "Immunization schedules",
                "Common childhood infections",
                "Age-specific normal values",
            ],
            ["AAP clinical practice guidelines", "CDC immunization schedules"],
        ),
        "dermatology": _section(
            "Dermatology",
            "Focus on conditions of the skin, hair and nails.",
            [
                "Morphology and distribution of skin lesions",
                "Eczema, psoriasis and acne management",
                "Recognition of skin cancer and melanoma",
                "Topical and systemic therapy selection",
            ],
            ["AAD guidelines of care"],
        ),
        "neurology": _section(
            "Neurology",
            "Focus on disorders of the central and peripheral nervous system.",
            [
                "Neurological localization from the examination",
                "Stroke recognition and acute management",
                "Seizure and epilepsy management",
                "Headache and migraine classification",
                "Neurodegenerative disease such as Parkinson and Alzheimer",
            ],
            ["AAN practice guidelines", "AHA/ASA stroke guidelines"],
        ),
        "orthopedics": _section(
            "Orthopedics",
            "Focus on the musculoskeletal system.",
            [
                "Fracture classification and management",
                "Joint examination and sports injuries",
                "Osteoporosis and bone health",
                "Indications for imaging and surgical referral",
            ],
            ["AAOS clinical practice guidelines"],
        ),
        "oncology": _section(
            "Oncology",
            "Focus on diagnosis and treatment of cancer.",
            [
                "Cancer staging and prognosis",
                "Chemotherapy, immunotherapy and targeted therapy",
                "Management of treatment toxicities",
                "Screening and hereditary cancer syndromes",
                "Palliative and supportive care",
            ],
            ["NCCN guidelines", "ASCO guidelines"],
        ),
        "psychiatry": _section(
            "Psychiatry",
            "Focus on mental, emotional and behavioral disorders.",
            [
                "Diagnostic criteria for depression and anxiety disorders",
                "Suicide risk assessment",
                "Psychopharmacology and side effect profiles",
                "Psychotherapy options",
            ],
            ["DSM-5-TR criteria", "APA practice guidelines"],
        ),
        "emergency_medicine": _section(
            "Emergency Medicine",
            "Focus on the rapid assessment and stabilization of acutely ill patients.",
            [
                "Triage and primary survey",
                "Resuscitation and airway management",
                "Time-critical diagnoses",
                "Toxicology and overdose management",
                "Disposition decisions",
            ],
            ["ACLS and ATLS protocols", "ACEP clinical policies"],
        ),
        FALLBACK_SPECIALTY: _section(
            "General Medical",
            "Provide broad, evidence-based medical information across specialties.",
            [
                "Clear clinical reasoning",
                "Current evidence and guideline recommendations",
                "Indications for specialist referral",
            ],
            [],
        ),
    }
)


@dataclass(frozen=True)
class StaticSpecialtyCatalog(SpecialtyCatalogPort):
    """Specialty texts from memory; unknown ids fall back to the general text."""

    texts: Mapping[str, str] = field(default_factory=lambda: SPECIALTY_TEXTS)
    fallback_id: str = FALLBACK_SPECIALTY

    def get_prompt_text(self, specialty_id: str) -> str | None:
        if not specialty_id:
            return None
        text = self.texts.get(specialty_id.strip().lower())
        if text is None:
            text = self.texts.get(self.fallback_id)
        return text

    def specialty_ids(self) -> list[str]:
        return sorted(self.texts)
