import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Union


Action = Union[list[str], Callable[[], None]]


# Execute an external command, raising CalledProcessError on a non-zero exit.
def run_command(cmd: list[str], env: Optional[dict[str, str]] = None) -> subprocess.CompletedProcess:
    merged_env = {**os.environ, **env} if env else None
    return subprocess.run(cmd, check=True, text=True, capture_output=True, env=merged_env)


@dataclass(frozen=True)
class Step:
    """One unit of provisioning work.

    ``action`` is either an argv list handed to the command runner, or a
    zero-argument callable doing in-process work such as writing a file.
    ``tolerated_codes`` lists exit statuses that mean the work was already
    done. ``skip_if`` is evaluated right before the step would run.
    """

    name: str
    action: Action
    description: str = ""
    tolerated_codes: tuple[int, ...] = ()
    skip_if: Optional[Callable[[], bool]] = None
    env: Optional[dict[str, str]] = None

    @property
    def is_command(self) -> bool:
        return isinstance(self.action, list)

    def describe(self) -> str:
        if self.is_command:
            return shlex.join(self.action)
        return self.description or self.name
