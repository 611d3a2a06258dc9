"""Status-keyed messaging templates.

Every connection email_status maps to a base template plus per-sub-stage
overrides. Only "Response" carries response-type overrides. The raw table is
kept in the camelCase shape it is authored in and validated into
StatusTemplate models at import time.
"""
from schemas.messaging import StatusTemplate

_PROGRESS_STAGES = ["Not Started", "Draft Made", "Email Sent"]

_RAW_TEMPLATES = {
    "Not Contacted": {
        "approach": "introduction",
        "tone": "professional curiosity",
        "context": "first impression",
        "callToAction": "informational interview or brief conversation",
        "description": "Initial outreach to establish connection",
        "progressStages": _PROGRESS_STAGES,
        "stageContexts": {
            "Not Started": {
                "approach": "introduction",
                "tone": "professional curiosity",
                "context": "preparing first impression",
                "callToAction": "informational interview or brief conversation",
            },
            "Draft Made": {
                "approach": "refined introduction",
                "tone": "confident and polished",
                "context": "finalizing first impression message",
                "callToAction": "compelling ask for conversation",
            },
            "Email Sent": {
                "approach": "patient follow-up",
                "tone": "respectful persistence",
                "context": "following up on initial outreach",
                "callToAction": "gentle reminder of interest",
            },
        },
    },
    "First Impression": {
        "approach": "strategic introduction with relationship building",
        "tone": "professional enthusiasm",
        "context": "establishing credibility and mutual interest",
        "callToAction": "meaningful conversation or connection",
        "description": "Building initial relationship and demonstrating value",
        "progressStages": _PROGRESS_STAGES,
        "stageContexts": {
            "Not Started": {
                "approach": "strategic introduction",
                "tone": "professional enthusiasm",
                "context": "researching and preparing personalized outreach",
                "callToAction": "informational interview or coffee chat",
            },
            "Draft Made": {
                "approach": "personalized introduction",
                "tone": "authentic and engaging",
                "context": "crafting compelling first impression",
                "callToAction": "specific and actionable meeting request",
            },
            "Email Sent": {
                "approach": "thoughtful follow-up",
                "tone": "respectful and value-added",
                "context": "following up with additional value or context",
                "callToAction": "renewed interest with fresh perspective",
            },
        },
    },
    "Follow-up": {
        "approach": "continued relationship building",
        "tone": "collaborative and engaged",
        "context": "strengthening existing connection",
        "callToAction": "deepening conversation or next steps",
        "description": "Strengthening existing relationship and exploring opportunities",
        "progressStages": _PROGRESS_STAGES,
        "stageContexts": {
            "Not Started": {
                "approach": "continued engagement",
                "tone": "relationship building",
                "context": "building on previous positive interaction",
                "callToAction": "next steps or deeper conversation",
            },
            "Draft Made": {
                "approach": "value-added follow-up",
                "tone": "helpful and insightful",
                "context": "sharing relevant insights or updates",
                "callToAction": "collaborative discussion or resource sharing",
            },
            "Email Sent": {
                "approach": "patient persistence",
                "tone": "understanding and professional",
                "context": "respectful check-in on continued interest",
                "callToAction": "flexible and low-pressure engagement",
            },
        },
    },
    "Response": {
        "approach": "adaptive engagement based on response type",
        "tone": "contextually appropriate",
        "context": "responding to their communication",
        "callToAction": "appropriate next step based on response",
        "description": "Engaging with their response - positive, negative, or neutral",
        "progressStages": _PROGRESS_STAGES,
        "responseTypes": {
            "positive": {
                "approach": "grateful acknowledgment",
                "tone": "appreciative and enthusiastic",
                "context": "thanking for positive response",
                "callToAction": "scheduling or next concrete step",
            },
            "negative": {
                "approach": "gracious understanding",
                "tone": "respectful and professional",
                "context": "understanding their constraints",
                "callToAction": "staying connected for future opportunities",
            },
            "neutral": {
                "approach": "clarifying value",
                "tone": "helpful and specific",
                "context": "providing more context about mutual benefit",
                "callToAction": "specific and low-commitment ask",
            },
        },
        "stageContexts": {
            "Not Started": {
                "approach": "response preparation",
                "tone": "thoughtful and strategic",
                "context": "analyzing their response and preparing appropriate reply",
                "callToAction": "contextually appropriate engagement",
            },
            "Draft Made": {
                "approach": "tailored response",
                "tone": "personalized and thoughtful",
                "context": "crafting response that matches their tone and needs",
                "callToAction": "response-specific call to action",
            },
            "Email Sent": {
                "approach": "response follow-through",
                "tone": "consistent and professional",
                "context": "following through on response commitments",
                "callToAction": "maintaining momentum from previous response",
            },
        },
    },
    "Meeting Scheduled": {
        "approach": "professional meeting management",
        "tone": "organized and appreciative",
        "context": "managing scheduled interaction professionally",
        "callToAction": "meeting preparation or follow-up",
        "description": "Managing scheduled interactions and maintaining momentum",
        "progressStages": _PROGRESS_STAGES,
        "stageContexts": {
            "Not Started": {
                "approach": "meeting confirmation",
                "tone": "organized and appreciative",
                "context": "confirming meeting details and preparing agenda",
                "callToAction": "confirmation and agenda preview",
            },
            "Draft Made": {
                "approach": "meeting preparation",
                "tone": "professional and prepared",
                "context": "finalizing meeting logistics and preparation",
                "callToAction": "meeting readiness and agenda confirmation",
            },
            "Email Sent": {
                "approach": "post-meeting follow-up",
                "tone": "grateful and actionable",
                "context": "following up on meeting outcomes",
                "callToAction": "next steps and continued engagement",
            },
        },
    },
}

DEFAULT_STATUS = "Not Contacted"

STATUS_TEMPLATES: dict[str, StatusTemplate] = {
    status: StatusTemplate.model_validate(raw) for status, raw in _RAW_TEMPLATES.items()
}
