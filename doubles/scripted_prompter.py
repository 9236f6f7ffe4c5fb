# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from typing import List
from typing import Sequence

from nas_setup import Prompter


class ScriptedPrompter(Prompter):
    """Answer prompts from a list, in order; remember what has been asked.

    An empty answer stands for Enter: the default is taken.
    """

    def __init__(self, answers: Sequence[str]):
        self._answers = list(answers)
        self.prompts: List[str] = []
        self.messages: List[str] = []

    def ask(self, prompt, default=''):
        self.prompts.append(prompt)
        if not self._answers:
            raise RuntimeError(f"No answer for {prompt!r}; asked so far: {self.prompts}")
        return self._answers.pop(0).strip() or default

    def ask_secret(self, prompt):
        self.prompts.append(prompt)
        if not self._answers:
            raise RuntimeError(f"No answer for {prompt!r}; asked so far: {self.prompts}")
        return self._answers.pop(0)

    def say(self, message):
        self.messages.append(message)

    def unused(self) -> Sequence[str]:
        return list(self._answers)
