import pytest

from autointerview.interview.models import PromptType
from autointerview.interview.prompts import InterviewPrompts
from autointerview.interview.script import (
    RoleTemplate, build_question_script, load_role_template, role_slug
)
from autointerview.interview.testing import create_test_role


def test_script_order_and_budgets():
    template = RoleTemplate(role="Software Engineer", traits=["curious"],
                            questions=["Q1?", "Q2?"], behavioral_questions=["B1?"])

    script = build_question_script(template, "Ada Lovelace", opening_wait=20, technical_wait=30,
                                   behavioral_wait=45)

    assert script.prompt_types == [PromptType.OPENING, PromptType.TECHNICAL, PromptType.TECHNICAL,
                                   PromptType.BEHAVIORAL, PromptType.CLOSING]
    assert [p.text for p in script][1:4] == ["Q1?", "Q2?", "B1?"]
    assert [p.response_wait_budget for p in script] == [20, 30, 30, 45, 0.0]
    assert script.response_count == 4
    assert not script[-1].expects_response
    assert script.traits == ("curious",)


def test_opening_greets_candidate_by_first_name():
    script = build_question_script(RoleTemplate(role="Data Analyst"), "Grace Hopper")
    assert script[0].text.startswith("Hello Grace,")
    assert "Data Analyst" in script[0].text
    assert script[-1].text == InterviewPrompts.closing()


def test_empty_role_gives_opening_and_closing_only():
    script = build_question_script(RoleTemplate(role="Intern"), "Ada")
    assert script.prompt_types == [PromptType.OPENING, PromptType.CLOSING]


def test_script_is_immutable():
    script = build_question_script(RoleTemplate(role="Intern"), "Ada")
    with pytest.raises(AttributeError):
        script.role = "Other"


def test_packaged_role_template():
    template = load_role_template("Software Engineer")
    assert template.role == "Software Engineer"
    assert template.questions
    assert template.behavioral_questions


def test_role_template_from_directory(tmp_path):
    create_test_role(str(tmp_path), "Data Analyst", ["SQL?"], [])
    template = load_role_template("data analyst", str(tmp_path))
    assert template.role == "Data Analyst"
    assert template.questions == ["SQL?"]
    assert template.traits == ["curious"]


def test_unknown_role_falls_back_to_general(tmp_path):
    template = load_role_template("Astronaut", str(tmp_path))
    assert template.role == "General"
    assert len(template.questions) == 4


def test_unreadable_role_falls_back_to_general(tmp_path):
    (tmp_path / "broken.json").write_text("{not json")
    assert load_role_template("Broken", str(tmp_path)).role == "General"


def test_role_slug():
    assert role_slug("  Customer Support  Specialist ") == "customer_support_specialist"


def test_transitions_rotate():
    n = len(InterviewPrompts.TRANSITIONS)
    assert InterviewPrompts.transition(0) == InterviewPrompts.transition(n)
    assert InterviewPrompts.transition(1) != InterviewPrompts.transition(2)


def test_role_slug_drops_path_characters():
    assert role_slug("../secret") == "secret"
    assert role_slug("C++ / Rust Developer") == "c_rust_developer"
    assert role_slug("..") == ""


def test_role_cannot_reach_outside_roles_dir(tmp_path):
    roles_dir = tmp_path / "roles"
    roles_dir.mkdir()
    (tmp_path / "secret.json").write_text('{"role": "Leaked", "questions": ["private data"]}')

    for role in ("../secret", "..", "/etc/passwd"):
        template = load_role_template(role, str(roles_dir))
        assert template.role == "General"
        assert "private data" not in template.questions
