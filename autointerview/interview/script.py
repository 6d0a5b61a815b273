"""
Role templates and the fixed question script built from them.
"""
import os
import re
import json
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from .models import Prompt, PromptType
from .prompts import InterviewPrompts
from ..config import (
    OPENING_WAIT_SECONDS, TECHNICAL_WAIT_SECONDS, BEHAVIORAL_WAIT_SECONDS
)

logger = logging.getLogger("question_script")

PACKAGED_ROLES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "roles")


@dataclass
class RoleTemplate:
    """Questions and traits for one role, as stored in roles/<slug>.json."""
    role: str
    traits: List[str] = field(default_factory=list)
    questions: List[str] = field(default_factory=list)
    behavioral_questions: List[str] = field(default_factory=list)

    @classmethod
    def default(cls) -> 'RoleTemplate':
        return cls(
            role="General",
            traits=["professional", "articulate", "thoughtful"],
            questions=[
                "Tell me about yourself and your background.",
                "What interests you about this opportunity?",
                "What are your key strengths?",
                "Where do you see yourself in 5 years?",
            ],
            behavioral_questions=[
                "Tell me about a time you faced a challenge and how you overcame it.",
                "Describe a situation where you had to work with a difficult team member.",
            ],
        )


def role_slug(role: str) -> str:
    """File name stem for a role: runs of anything but [a-z0-9-] become one underscore."""
    return re.sub(r"[^a-z0-9-]+", "_", role.strip().lower()).strip("_")


def load_role_template(role: str, roles_dir: Optional[str] = None) -> RoleTemplate:
    """
    Load roles/<slug>.json for a role name.

    Unknown or unreadable roles fall back to the General template.
    """
    slug = role_slug(role)
    if not slug:
        logger.warning(f"Role {role!r} has no usable template name, using General template")
        return RoleTemplate.default()
    path = os.path.join(roles_dir or PACKAGED_ROLES_DIR, f"{slug}.json")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning(f"No role template at {path}, using General template")
        return RoleTemplate.default()
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read role template {path}: {e}")
        return RoleTemplate.default()

    return RoleTemplate(
        role=data.get("role", role),
        traits=list(data.get("traits", [])),
        questions=list(data.get("questions", [])),
        behavioral_questions=list(data.get("behavioral_questions", [])),
    )


@dataclass(frozen=True)
class QuestionScript:
    """Immutable ordered prompts: opening, technical*, behavioral*, closing."""
    role: str
    prompts: Tuple[Prompt, ...]
    traits: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.prompts)

    def __iter__(self) -> Iterator[Prompt]:
        return iter(self.prompts)

    def __getitem__(self, index: int) -> Prompt:
        return self.prompts[index]

    @property
    def prompt_types(self) -> List[PromptType]:
        return [p.type for p in self.prompts]

    @property
    def response_count(self) -> int:
        """Number of prompts that expect an answer."""
        return sum(1 for p in self.prompts if p.expects_response)


def build_question_script(template: RoleTemplate,
                          candidate_name: str,
                          opening_wait: float = OPENING_WAIT_SECONDS,
                          technical_wait: float = TECHNICAL_WAIT_SECONDS,
                          behavioral_wait: float = BEHAVIORAL_WAIT_SECONDS) -> QuestionScript:
    """Concatenate the prompts for a role in their fixed order."""
    prompts = [Prompt(PromptType.OPENING, InterviewPrompts.opening(candidate_name, template.role),
                      True, opening_wait)]
    prompts.extend(Prompt(PromptType.TECHNICAL, q, True, technical_wait) for q in template.questions)
    prompts.extend(Prompt(PromptType.BEHAVIORAL, q, True, behavioral_wait) for q in template.behavioral_questions)
    prompts.append(Prompt(PromptType.CLOSING, InterviewPrompts.closing(), False, 0.0))

    logger.debug(f"Built script for {template.role}: {len(prompts)} prompts")
    return QuestionScript(role=template.role, prompts=tuple(prompts), traits=tuple(template.traits))
