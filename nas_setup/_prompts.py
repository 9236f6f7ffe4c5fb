# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import getpass
import logging
from abc import ABCMeta
from abc import abstractmethod
from typing import Callable
from typing import TypeVar

from nas import ValidationError

_logger = logging.getLogger(__name__)

_T = TypeVar('_T')


class Prompter(metaclass=ABCMeta):
    """Operator dialogue; answers are stripped, empty answer gives the default."""

    @abstractmethod
    def ask(self, prompt: str, default: str = '') -> str:
        pass

    @abstractmethod
    def ask_secret(self, prompt: str) -> str:
        pass

    @abstractmethod
    def say(self, message: str):
        pass

    def confirm(self, prompt: str, default: bool = False) -> bool:
        hint = 'Y/n' if default else 'y/N'
        answer = self.ask(f'{prompt} [{hint}]: ', 'y' if default else 'n')
        return answer[:1].lower() == 'y'

    def ask_valid(self, prompt: str, default: str, validate: Callable[[str], _T]) -> _T:
        while True:
            answer = self.ask(prompt, default)
            try:
                return validate(answer)
            except ValidationError as e:
                self.say(str(e))


class ConsolePrompter(Prompter):

    def ask(self, prompt, default=''):
        answer = input(prompt).strip()
        _logger.debug("%s%s", prompt, answer)
        return answer or default

    def ask_secret(self, prompt):
        return getpass.getpass(prompt)

    def say(self, message):
        print(message, flush=True)
