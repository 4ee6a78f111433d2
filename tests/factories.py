"""Test data shared by unit and integration tests.

A small, fully-known question catalog:

    Section 1 "Build, Test and Deploy" (max 6)
        Q1 Banner
        S1-Q2 Option   [Build]  answers 0 / 2 / 1        -> max 2
        S1-Q3 Checkbox [Test]   answers 1 / 2            -> max 3
        S1-Q4 Option            implicit Yes(1) / No(0)  -> max 1
    Section 2 "Culture, People" (max 1)
        S2-Q1 Option            implicit Yes(1) / No(0)
    Section 3 "Notes" (max 0, never scored)
        Q1 Banner
"""

import json
from typing import Any

SAMPLE_QUESTIONS: list[dict[str, Any]] = [
    {
        "SectionName": "Build, Test and Deploy",
        "SpiderPos": 1,
        "Questions": [
            {"Type": "Banner", "QuestionText": "How the team ships software."},
            {
                "Type": "Option",
                "SubCategory": "Build",
                "QuestionText": "How often is code integrated?",
                "Answers": [
                    {"Answer": "Rarely", "Score": 0},
                    {"Answer": "Daily", "Score": 2},
                    {"Answer": "Weekly", "Score": 1},
                ],
            },
            {
                "Type": "Checkbox",
                "SubCategory": "Test",
                "QuestionText": "Which tests run on every change?",
                "Answers": [
                    {"Answer": "Unit", "Score": 1},
                    {"Answer": "Integration", "Score": 2},
                ],
            },
            {"Type": "Option", "QuestionText": "Can the team deploy on demand?"},
        ],
    },
    {
        "SectionName": "Culture, People",
        "SpiderPos": 2,
        "Questions": [
            {"Type": "Option", "QuestionText": "Are post-incident reviews blameless?"},
        ],
    },
    {
        "SectionName": "Notes",
        "SpiderPos": 3,
        "Questions": [{"Type": "Banner", "QuestionText": "Thank you."}],
    },
]

SAMPLE_ADVICE: dict[str, Any] = {
    "//": "Authoring comment, not a section.",
    "Build, Test and Deploy": {
        "Advice": "Automate the pipeline.",
        "ReadMore": "See the links.",
        "Links": [
            {
                "Type": "Book",
                "Text": "Continuous Delivery",
                "Href": "https://example.com/cd",
                "Paid": "Paid",
            }
        ],
    },
}


class InMemoryCatalogSource:
    """Catalog source serving fixed JSON documents."""

    def __init__(self, questions: Any = None, advice: Any = None) -> None:
        self.questions = json.dumps(SAMPLE_QUESTIONS if questions is None else questions)
        self.advice = json.dumps(SAMPLE_ADVICE if advice is None else advice)

    def read_questions(self) -> str:
        return self.questions

    def read_advice(self) -> str:
        return self.advice
