"""Core domain logic for SkillForge.

Provides:
- errors: shared exception hierarchy with client-facing codes
- storage: local object storage for uploaded files
- uploads: upload validation, AI description and publishing
- planner: learning plan tracking and milestone quizzes
"""

__all__ = ["errors", "storage", "uploads", "planner"]
