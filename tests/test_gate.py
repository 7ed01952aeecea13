from __future__ import annotations

import pytest

from overcast.gate import DESTROY_PROMPT, confirm_destroy

pytestmark = [pytest.mark.unit]


def _answer(value: str, asked: list[str] | None = None):
    def ask(prompt: str) -> str:
        if asked is not None:
            asked.append(prompt)
        return value

    return ask


@pytest.mark.parametrize("answer", ["n", "N", " n\n"])
def test_negative_answers_decline(answer):
    assert confirm_destroy("web.01", ask=_answer(answer)) is False


@pytest.mark.parametrize("answer", ["", "y", "Y", "yes", "no", "nope"])
def test_anything_else_proceeds(answer):
    assert confirm_destroy("web.01", ask=_answer(answer)) is True


def test_prompt_text():
    asked: list[str] = []
    confirm_destroy("web.01", ask=_answer("", asked))
    assert asked == [DESTROY_PROMPT]
    assert DESTROY_PROMPT.endswith("[Y/n]")


def test_force_skips_prompt():
    def ask(_: str) -> str:
        raise AssertionError("prompted despite force")

    assert confirm_destroy("web.01", force=True, ask=ask) is True
