"""Terraform CLI wrapper."""

import json
import logging
from pathlib import Path
from typing import Optional

from dcinstall.errors import TerraformError
from dcinstall.models import StateBackend, TerraformOutputs
from dcinstall.services.process import Runner, run_command

logger = logging.getLogger(__name__)

OUTPUTS_FILE = "outputs.json"


class TerraformClient:
    """Runs terraform commands against one module directory."""

    def __init__(
        self,
        working_dir: Path,
        log_file: Optional[Path] = None,
        runner: Runner = run_command,
        binary: str = "terraform",
    ):
        self.working_dir = Path(working_dir).resolve()
        self.log_file = log_file
        self.runner = runner
        self.binary = binary

    def _tee(self, output: str) -> None:
        if self.log_file and output:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(output)

    def run(self, *args: str, echo: bool = True) -> str:
        command = [self.binary, f"-chdir={self.working_dir}", *args]
        logger.debug("Running %s", " ".join(command))
        returncode, output = self.runner(command, None, echo)
        if echo:
            self._tee(output)
        if returncode != 0:
            raise TerraformError(command, returncode)
        return output

    @property
    def is_initialized(self) -> bool:
        return (self.working_dir / ".terraform").is_dir()

    def init(self, migrate_state: bool = False) -> None:
        if migrate_state:
            self.run("init", "-migrate-state", "-force-copy", "-no-color")
        self.run("init", "-no-color")

    def apply(self, var_file: Optional[Path] = None) -> None:
        args = ["apply", "-auto-approve", "-no-color"]
        if var_file:
            args.append(f"-var-file={var_file}")
        self.run(*args)

    def outputs(self) -> TerraformOutputs:
        text = self.run("output", "-json", echo=False)
        return TerraformOutputs.model_validate_json(text or "{}")

    def save_outputs(self, path: Optional[Path] = None) -> TerraformOutputs:
        """Persist ``terraform output -json`` for the post-apply steps."""
        outputs = self.outputs()
        path = path or self.working_dir / OUTPUTS_FILE
        with open(path, "w") as f:
            json.dump(outputs.model_dump(), f, indent=2)
        return outputs


def needs_state_migration(root: Path, backend: StateBackend) -> bool:
    """True unless the root module is already initialised against ``backend``."""
    state_file = Path(root) / ".terraform" / "terraform.tfstate"
    if not state_file.exists():
        return True
    try:
        with open(state_file) as f:
            data = json.load(f)
    except (OSError, ValueError):
        return True
    current = data.get("backend") or {}
    config = current.get("config") or {}
    return not (
        current.get("type") == "s3"
        and config.get("bucket") == backend.bucket
        and config.get("key") == backend.key
    )
