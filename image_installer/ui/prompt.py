"""Yes/no style operator prompts on the controlling terminal."""

from __future__ import annotations

from typing import Callable, Iterable

from image_installer.logging import LoggerFactory


log = LoggerFactory.for_system()

YES_TOKENS = ("yes", "y")
NO_TOKENS = ("no", "n")


def get_response(
    question: str,
    default: str,
    allowed_tokens: Iterable[str],
    *,
    input_func: Callable[[str], str] = input,
) -> str:
    """Ask ``question`` until the answer is one of ``allowed_tokens``.

    Matching is case-insensitive. An empty answer, or end of input, selects
    ``default``.

    Returns:
        The matched token, lower-cased
    """
    allowed = [token.lower() for token in allowed_tokens]
    default = default.lower()
    if default not in allowed:
        raise ValueError(f"Default {default!r} is not an allowed answer")

    while True:
        try:
            answer = input_func(f"{question} [{default}]: ")
        except EOFError:
            return default
        answer = answer.strip().lower()
        if not answer:
            return default
        if answer in allowed:
            return answer
        print(f"Please answer one of: {', '.join(allowed)}")


def confirm(
    question: str,
    *,
    default: bool,
    assume_default: bool = False,
    input_func: Callable[[str], str] = input,
) -> bool:
    """Ask a yes/no question.

    Args:
        question: Text shown to the operator
        default: Answer used for an empty reply
        assume_default: Answer with ``default`` without asking (--no-prompt)
    """
    if assume_default:
        log.info(f"{question} [{'yes' if default else 'no'}] (assumed)")
        return default
    answer = get_response(
        question,
        "yes" if default else "no",
        YES_TOKENS + NO_TOKENS,
        input_func=input_func,
    )
    return answer in YES_TOKENS
