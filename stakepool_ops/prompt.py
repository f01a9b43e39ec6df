import getpass
from typing import Callable, List, Optional, Sequence, Union

Validator = Callable[[str], Union[bool, str]]


class Prompter:
    """Operator interaction. Subclasses only supply the raw I/O."""

    def say(self, *parts) -> None:
        raise NotImplementedError

    def _read(self, message: str, secret: bool = False) -> str:
        raise NotImplementedError

    def _ask(self, message: str, validate: Optional[Validator], secret: bool) -> str:
        while True:
            value = self._read(message, secret=secret)
            verdict = validate(value) if validate else True
            if verdict is True:
                return value
            self.say(f">> {verdict}")

    def text(self, message: str, validate: Optional[Validator] = None) -> str:
        return self._ask(message, validate, secret=False)

    def password(self, message: str, validate: Validator) -> str:
        return self._ask(message, validate, secret=True)

    def confirm(self, message: str, default: bool = False) -> bool:
        hint = "Y/n" if default else "y/N"
        answer = self._ask(f"{message} ({hint})", _yes_no, secret=False).strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes")

    def select(self, message: str, choices: Sequence[str]) -> str:
        choices = list(choices)
        for n, choice in enumerate(choices, 1):
            self.say(f"  {n}) {choice}")

        def valid(value: str) -> Union[bool, str]:
            if value.strip().isdigit() and 1 <= int(value) <= len(choices):
                return True
            return f"enter a number between 1 and {len(choices)}"

        return choices[int(self._ask(message, valid, secret=False)) - 1]


def _yes_no(value: str) -> Union[bool, str]:
    return value.strip().lower() in ("", "y", "yes", "n", "no") or "answer y or n"


class ConsolePrompter(Prompter):
    def say(self, *parts) -> None:
        print(*parts)

    def _read(self, message: str, secret: bool = False) -> str:
        if secret:
            return getpass.getpass(f"{message} ")
        return input(f"{message} ")
