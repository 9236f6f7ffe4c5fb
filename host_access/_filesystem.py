# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from abc import ABCMeta
from abc import abstractmethod
from pathlib import PurePosixPath
from typing import Sequence
from typing import Union

from host_access._command import Shell
from host_access._command import quote_arg

_logger = logging.getLogger(__name__)

_PathLike = Union[str, PurePosixPath]


class Filesystem(metaclass=ABCMeta):
    """File operations on the Proxmox host or inside the container.

    Operations that create things are not recursive: callers that need to
    undo what they did must know every directory they have made.
    """

    @abstractmethod
    def exists(self, path: _PathLike) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: _PathLike) -> bool:
        pass

    @abstractmethod
    def is_link(self, path: _PathLike) -> bool:
        pass

    @abstractmethod
    def read_text(self, path: _PathLike) -> str:
        pass

    @abstractmethod
    def write_text(self, path: _PathLike, text: str):
        """Replace file contents atomically: readers see old or new text."""
        pass

    @abstractmethod
    def copy(self, source: _PathLike, destination: _PathLike):
        pass

    @abstractmethod
    def remove(self, path: _PathLike):
        """Remove a file or a link; missing is fine."""
        pass

    @abstractmethod
    def make_dir(self, path: _PathLike):
        pass

    @abstractmethod
    def remove_empty_dir(self, path: _PathLike):
        pass

    @abstractmethod
    def list_dir(self, path: _PathLike) -> Sequence[str]:
        pass

    @abstractmethod
    def chown(self, path: _PathLike, user: Union[str, int], group: Union[str, int]):
        pass

    @abstractmethod
    def chmod(self, path: _PathLike, mode: int):
        pass

    @abstractmethod
    def symlink(self, target: _PathLike, link: _PathLike):
        pass


class ShellFilesystem(Filesystem):

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{self.__class__.__name__} via {self._shell!r}>'

    def exists(self, path):
        return self._shell.succeeds(f'test -e {quote_arg(path)} || test -L {quote_arg(path)}')

    def is_dir(self, path):
        return self._shell.succeeds(['test', '-d', str(path)])

    def is_link(self, path):
        return self._shell.succeeds(['test', '-L', str(path)])

    def read_text(self, path):
        result = self._shell.run(['cat', str(path)], check=False)
        if result.returncode != 0:
            if not self.exists(path):
                raise FileNotFoundError(f"{path} does not exist on {self._shell!r}")
            result.check_returncode()
        return result.stdout.decode()

    def write_text(self, path, text):
        path = PurePosixPath(path)
        _logger.debug("%s: new:\n%s", path, text)
        # Temporary file is in the same directory for mv to be a rename.
        self._shell.run(f'''
            mkdir -p {quote_arg(path.parent)}
            tmp=$(mktemp {quote_arg(path.parent / ('.' + path.name + '.XXXXXX'))})
            cat > "$tmp"
            chmod 0644 "$tmp"
            mv -f "$tmp" {quote_arg(path)}
            ''', input=text.encode())

    def copy(self, source, destination):
        self._shell.run(['cp', '-p', str(source), str(destination)])

    def remove(self, path):
        self._shell.run(['rm', '-f', str(path)])

    def make_dir(self, path):
        self._shell.run(['mkdir', str(path)])

    def remove_empty_dir(self, path):
        self._shell.run(['rmdir', str(path)])

    def list_dir(self, path):
        output = self._shell.output(['find', str(path), '-mindepth', '1', '-maxdepth', '1', '-printf', '%f\\n'])
        return sorted(output.splitlines())

    def chown(self, path, user, group):
        self._shell.run(['chown', f'{user}:{group}', str(path)])

    def chmod(self, path, mode):
        self._shell.run(['chmod', f'{mode:04o}', str(path)])

    def symlink(self, target, link):
        self._shell.run(['ln', '-s', str(target), str(link)])
