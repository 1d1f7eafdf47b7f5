"""Prompt templates for thread insight extraction.

Templates use Python string placeholders ({variable_name}); literal JSON
braces are doubled.
"""

THREAD_ANALYSIS_PROMPT = """You are an expert at analyzing communication patterns and personal \
context from email threads.

Analyze this email thread to extract insights about the user's communication style, \
relationships, professional context, behavior, timing habits, and areas of knowledge.

Thread Summary:
{thread_summary}

Sample User Messages:
{user_messages}

Sample Messages From Other Participants:
{other_messages}

Respond with a single JSON object in exactly this format:

{{
  "communication_insights": [
    {{
      "type": "{communication_types}",
      "description": "Brief description of the insight",
      "evidence": ["specific examples from the messages"],
      "confidence": 0.0-1.0,
      "contact_email": "email if contact-specific"
    }}
  ],
  "relationship_insights": [
    {{
      "contact_email": "email address",
      "suggested_category": "{contact_categories}",
      "evidence": ["indicators that support this categorization"],
      "confidence": 0.0-1.0,
      "relationship_dynamics": "how the user relates to this contact",
      "communication_frequency": "{communication_frequencies}",
      "communication_pattern": "description of how they interact"
    }}
  ],
  "professional_insights": [
    {{
      "type": "{professional_types}",
      "value": "extracted value",
      "evidence": ["supporting evidence from messages"],
      "confidence": 0.0-1.0,
      "context": "where this surfaced"
    }}
  ],
  "personal_insights": [
    {{
      "type": "{personal_types}",
      "value": "extracted value",
      "evidence": ["supporting evidence"],
      "confidence": 0.0-1.0,
      "category": "optional grouping"
    }}
  ],
  "behavioral_patterns": [
    {{
      "type": "short pattern name",
      "pattern": "what the user habitually does",
      "triggers": ["situations that trigger it"],
      "evidence": ["supporting evidence"],
      "confidence": 0.0-1.0
    }}
  ],
  "contextual_responses": [
    {{
      "scenario": "the kind of situation",
      "typical_response_style": "how the user responds",
      "formality_level": "{formality_levels}",
      "key_phrases": ["phrases the user uses"],
      "evidence": ["supporting evidence"],
      "confidence": 0.0-1.0
    }}
  ],
  "temporal_patterns": [
    {{
      "type": "short pattern name",
      "pattern": "timing habit",
      "specific_times": ["times or days mentioned"],
      "evidence": ["supporting evidence"],
      "confidence": 0.0-1.0
    }}
  ],
  "knowledge_areas": [
    {{
      "domain": "subject area",
      "expertise_level": "{expertise_levels}",
      "evidence": ["supporting evidence"],
      "confidence": 0.0-1.0,
      "context": "where this knowledge showed"
    }}
  ]
}}

Focus on:
1. Communication tone, formality, greetings, and closings (mention "greeting" or "closing" \
in the description of such insights)
2. Relationship dynamics and professional hierarchies ({management_levels})
3. Time preferences and scheduling patterns
4. Decision-making style and authority level
5. Personal interests or values that surface in communication

RULES:
- Use only the listed values for enumerated fields
- Quote evidence verbatim from the messages
- Be conservative with confidence scores. Only assign high confidence (>0.8) when there is \
clear, repeated evidence
- Return an empty array for any category without evidence
"""
