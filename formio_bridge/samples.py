"""Bundled sample form used to seed an empty form service."""

from typing import Any, Dict

SAMPLE_HEALTH_SURVEY: Dict[str, Any] = {
    "title": "Health Survey Demo",
    "name": "healthSurveyDemo",
    "path": "health-survey-demo",
    "type": "form",
    "display": "form",
    "components": [
        {
            "type": "textfield",
            "key": "name",
            "label": "Full Name",
            "placeholder": "Enter your full name",
            "input": True,
            "required": True,
            "validate": {"required": True, "minLength": 2, "maxLength": 100},
        },
        {
            "type": "email",
            "key": "email",
            "label": "Email Address",
            "placeholder": "Enter your email",
            "input": True,
            "required": True,
            "validate": {"required": True},
        },
        {
            "type": "number",
            "key": "age",
            "label": "Age",
            "placeholder": "Enter your age",
            "input": True,
            "required": True,
            "validate": {"required": True, "min": 18, "max": 120},
        },
        {
            "type": "radio",
            "key": "healthRating",
            "label": "How would you rate your overall health?",
            "input": True,
            "required": True,
            "values": [
                {"label": "Excellent", "value": "excellent"},
                {"label": "Good", "value": "good"},
                {"label": "Fair", "value": "fair"},
                {"label": "Poor", "value": "poor"},
            ],
        },
        {
            "type": "textarea",
            "key": "healthConcerns",
            "label": "Do you have any specific health concerns?",
            "placeholder": "Please describe any health concerns...",
            "input": True,
            "required": False,
            "conditional": {"show": True, "when": "healthRating", "eq": "fair"},
        },
        {
            "type": "textarea",
            "key": "urgentConcerns",
            "label": "Please describe your urgent health concerns:",
            "placeholder": "Please provide details about your health concerns...",
            "input": True,
            "required": True,
            "conditional": {"show": True, "when": "healthRating", "eq": "poor"},
        },
        {
            "type": "selectboxes",
            "key": "symptoms",
            "label": "Are you currently experiencing any of these symptoms?",
            "input": True,
            "values": [
                {"label": "Fatigue", "value": "fatigue"},
                {"label": "Headaches", "value": "headaches"},
                {"label": "Difficulty sleeping", "value": "insomnia"},
                {"label": "Digestive issues", "value": "digestive"},
                {"label": "Joint pain", "value": "joint_pain"},
                {"label": "Mood changes", "value": "mood_changes"},
                {"label": "None of the above", "value": "none"},
            ],
        },
        {
            "type": "survey",
            "key": "satisfaction",
            "label": "Satisfaction Survey",
            "input": True,
            "questions": [
                {
                    "label": "How satisfied are you with our healthcare services?",
                    "value": "service_satisfaction",
                },
            ],
            "values": [
                {"label": "Very Dissatisfied", "value": 1},
                {"label": "Dissatisfied", "value": 2},
                {"label": "Neutral", "value": 3},
                {"label": "Satisfied", "value": 4},
                {"label": "Very Satisfied", "value": 5},
            ],
        },
        {
            "type": "number",
            "key": "npsScore",
            "label": (
                "On a scale of 0-10, how likely are you to recommend our services "
                "to a friend or colleague?"
            ),
            "input": True,
            "validate": {"min": 0, "max": 10},
        },
        {
            "type": "textarea",
            "key": "feedback",
            "label": "Additional feedback or suggestions:",
            "placeholder": "Please share any additional feedback...",
            "input": True,
            "required": False,
        },
        {
            "type": "checkbox",
            "key": "consent",
            "label": (
                "I consent to the collection and use of my health information "
                "for healthcare purposes"
            ),
            "input": True,
            "required": True,
        },
    ],
    "tags": ["health", "survey", "demo"],
}

__all__ = ["SAMPLE_HEALTH_SURVEY"]
