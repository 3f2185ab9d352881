import subprocess
from dataclasses import dataclass, field
from typing import Callable

from installer.steps import Step, run_command


class StepFailed(RuntimeError):
    """A fatal step failure; the remaining steps were not attempted."""

    def __init__(self, step_name: str, position: int, total: int, detail: str):
        self.step_name = step_name
        self.position = position
        self.total = total
        self.detail = detail
        super().__init__(f"step {position}/{total} '{step_name}' failed: {detail}")


@dataclass
class ProvisionReport:
    completed: list[str] = field(default_factory=list)
    tolerated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


# Summarize a failed command for the diagnostic line.
def describe_exit(err: subprocess.CalledProcessError) -> str:
    detail = f"exit code {err.returncode}"
    output = (err.stderr or err.stdout or "").strip()
    if output:
        detail += f": {output.splitlines()[-1]}"
    return detail


class Provisioner:
    """Runs steps strictly in order and stops at the first fatal failure."""

    def __init__(self, runner: Callable = run_command, dry_run: bool = False):
        self.runner = runner
        self.dry_run = dry_run

    def run(self, steps: list[Step]) -> ProvisionReport:
        report = ProvisionReport()
        total = len(steps)

        for position, step in enumerate(steps, 1):
            label = f"[{position}/{total}] {step.name}"

            try:
                if step.skip_if is not None and step.skip_if():
                    print(f"{label}: already done, skipping")
                    report.skipped.append(step.name)
                    continue

                print(f"{label}: {step.describe()}")
                if self.dry_run:
                    report.skipped.append(step.name)
                    continue

                self._execute(step)
            except subprocess.CalledProcessError as e:
                if e.returncode not in step.tolerated_codes:
                    raise StepFailed(step.name, position, total, describe_exit(e)) from e
                print(f"{label}: exit code {e.returncode} means already present, continuing")
                report.tolerated.append(step.name)
                continue
            except FileNotFoundError as e:
                raise StepFailed(step.name, position, total, f"not found: {e.filename or e}") from e
            except (OSError, RuntimeError) as e:
                raise StepFailed(step.name, position, total, str(e)) from e

            report.completed.append(step.name)

        return report

    def _execute(self, step: Step) -> None:
        if step.is_command:
            self.runner(step.action, env=step.env)
        else:
            step.action()
