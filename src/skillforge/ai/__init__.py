"""AI flows for SkillForge.

Provides:
- Content validation and description for uploads
- Quiz generation and quiz feedback
- Content tutor and global chatbots
- Learning plan generation
"""

from skillforge.ai.flows import (
    ask_content_chatbot,
    ask_global_chatbot,
    generate_quiz,
    suggest_quiz_feedback,
    validate_and_describe_content,
)
from skillforge.ai.learning_plan import PlanGenerationError, generate_learning_plan

__all__ = [
    "PlanGenerationError",
    "ask_content_chatbot",
    "ask_global_chatbot",
    "generate_learning_plan",
    "generate_quiz",
    "suggest_quiz_feedback",
    "validate_and_describe_content",
]
