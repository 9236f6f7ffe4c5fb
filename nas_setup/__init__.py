# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from nas_setup._flows import install_flow
from nas_setup._flows import manage_flow
from nas_setup._flows import select_container
from nas_setup._flows import summary
from nas_setup._prompts import ConsolePrompter
from nas_setup._prompts import Prompter

__all__ = [
    'ConsolePrompter',
    'Prompter',
    'install_flow',
    'manage_flow',
    'select_container',
    'summary',
    ]
