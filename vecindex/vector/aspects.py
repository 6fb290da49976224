"""
Canonical aspect tables for medical QA datasets.

Each table maps a canonical aspect key to the representative heading whose
encoding is used as the aspect's vector.
"""

from typing import Dict

# raw dataset headings that stand for another heading
DEFAULT_HEADING_ALIASES = {
    "Abstract": "Description",
}

MEDQUAD_ASPECTS = {
    "information": "description",
    "exams_and_tests": "diagnosis",
    "treatment": "treatment",
    "symptoms": "symptoms and presentation",
    "prevention": "prevention",
    "stages": "staging",
    "genetic_changes": "genetic mechanism",
    "causes": "causes and mechanism",
    "considerations": "management considerations",
    "susceptibility": "risk factors",
    "research": "research directions and trials",
    "frequency": "frequency and epidemiology",
    "complications": "complications",
    "inheritance": "genetic inheritance",
    "outlook": "prognosis",
}

WIKISECTION_ASPECTS = {
    "information": "description",
    "cause": "causes and pathogenesis",
    "classification": "classification and types",
    "complication": "complications",
    "culture": "society and culture",
    "diagnosis": "diagnosis",
    "epidemiology": "epidemiology",
    "etymology": "terminology and etymology",
    "fauna": "animals",
    "genetics": "genetic mechanism",
    "geography": "geography",
    "history": "history",
    "infection": "infection and transmission",
    "management": "management",
    "mechanism": "mechanism",
    "medication": "medication and drugs",
    "pathology": "pathology",
    "pathophysiology": "pathophysiology",
    "prevention": "prevention",
    "prognosis": "prognosis",
    "research": "research directions and trials",
    "risk": "risk factors",
    "screening": "screening tests",
    "surgery": "surgical procedures",
    "symptom": "signs and symptoms",
    "tomography": "tomography",
    "treatment": "treatment",
}

HEALTHQA_ASPECTS = {
    "information": "description",
    "diagnosis": "diagnosis",
    "treatment": "treatment",
    "risk_factors": "risk factors",
    "complications": "complications",
    "symptoms": "signs and symptoms",
    "causes": "causes and pathogenesis",
    "surgery": "surgical procedures",
    "severity": "severity",
    "impact": "impact on life",
    "prognosis": "prognosis",
    "prevalence": "prevalence and epidemiology",
    "tests": "tests and screening",
    "prevention": "prevention",
    "recovery": "recovery and healing",
    "types": "classification and types",
    "medication": "medication and drugs",
    "infection": "infection and transmission",
    "management": "management considerations",
    "inheritance": "genetic inheritance",
    "mechanism": "mechanism and staging",
}

ASPECT_ASSIGNMENTS = {
    "MedQuAD": MEDQUAD_ASPECTS,
    "WikiSection": WIKISECTION_ASPECTS,
    "HealthQA": HEALTHQA_ASPECTS,
}


def get_aspect_assignments(dataset_name: str) -> Dict[str, str]:
    """Return a copy of the aspect table of a dataset."""
    if dataset_name not in ASPECT_ASSIGNMENTS:
        raise ValueError(f"Unknown dataset '{dataset_name}', expected one of {sorted(ASPECT_ASSIGNMENTS)}")
    return dict(ASPECT_ASSIGNMENTS[dataset_name])
