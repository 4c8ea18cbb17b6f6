"""Azure deployment wrapper around the `az` CLI.

The subscription comes from the caller's active `az login` session. A failed
step aborts the run; nothing already created is rolled back.
"""

import json
import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors import ProvisioningError
from ..models.config_models import (
    API_KEY_KEY, DEPLOYMENT_KEY, ENDPOINT_KEY, RESOURCE_GROUP_KEY,
)
from .config_store import write_config

log = logging.getLogger("formscan")

ACCOUNT_NAME_OUTPUT = "AZURE_OPENAI_ACCOUNT_NAME"
REQUIRED_OUTPUTS = (RESOURCE_GROUP_KEY, ENDPOINT_KEY, ACCOUNT_NAME_OUTPUT, DEPLOYMENT_KEY)


@dataclass
class ProvisionResult:
    resource_group: str
    endpoint: str
    account_name: str
    deployment_name: str
    api_key: str

    def to_config_entries(self) -> Dict[str, str]:
        return {
            RESOURCE_GROUP_KEY: self.resource_group,
            ENDPOINT_KEY: self.endpoint,
            API_KEY_KEY: self.api_key,
            DEPLOYMENT_KEY: self.deployment_name,
        }


class Provisioner:
    def __init__(
        self,
        template_file: Union[str, Path],
        parameters_file: Optional[Union[str, Path]] = None,
        *,
        az: str = "az",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.template_file = Path(template_file)
        self.parameters_file = Path(parameters_file) if parameters_file else None
        self.az = az
        self.runner = runner

    def _run(self, args: List[str]) -> Any:
        cmd = [self.az, *args, "--output", "json"]
        log.info(f"[provision] {' '.join(cmd[:4])} ...")
        try:
            result = self.runner(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise ProvisioningError(f"Azure CLI not found: {self.az}", command=cmd) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            log.error(f"[provision] exit={result.returncode} stderr={stderr[:500]!r}")
            raise ProvisioningError(
                f"{' '.join(cmd[:3])} failed with exit code {result.returncode}: {stderr}",
                command=cmd, stderr=stderr,
            )
        try:
            return json.loads(result.stdout or "null")
        except json.JSONDecodeError as e:
            raise ProvisioningError(f"unexpected output from {' '.join(cmd[:3])}: {e}", command=cmd) from e

    def deploy(self, location: str, environment_name: str, *, deployment_name: Optional[str] = None) -> ProvisionResult:
        name = deployment_name or f"{environment_name}-{int(time.time())}"
        args = [
            "deployment", "sub", "create",
            "--name", name,
            "--location", location,
            "--template-file", str(self.template_file),
        ]
        if self.parameters_file:
            args += ["--parameters", str(self.parameters_file)]
        args += ["--parameters", f"environmentName={environment_name}", f"location={location}"]

        t0 = time.time()
        deployment = self._run(args)
        outputs = _template_outputs(deployment)
        missing = [k for k in REQUIRED_OUTPUTS if not outputs.get(k)]
        if missing:
            raise ProvisioningError(f"deployment {name} did not return outputs: {', '.join(missing)}")
        log.info(f"[provision] deployment {name} done in {int(time.time() - t0)}s rg={outputs[RESOURCE_GROUP_KEY]}")

        keys = self._run([
            "cognitiveservices", "account", "keys", "list",
            "--name", outputs[ACCOUNT_NAME_OUTPUT],
            "--resource-group", outputs[RESOURCE_GROUP_KEY],
        ])
        api_key = (keys or {}).get("key1")
        if not api_key:
            raise ProvisioningError(f"no access key returned for account {outputs[ACCOUNT_NAME_OUTPUT]}")

        return ProvisionResult(
            resource_group=outputs[RESOURCE_GROUP_KEY],
            endpoint=outputs[ENDPOINT_KEY],
            account_name=outputs[ACCOUNT_NAME_OUTPUT],
            deployment_name=outputs[DEPLOYMENT_KEY],
            api_key=api_key,
        )

    def write_config(self, result: ProvisionResult, env_file: Union[str, Path]) -> Path:
        return write_config(env_file, result.to_config_entries())


def _template_outputs(deployment: Any) -> Dict[str, str]:
    # az returns {"properties": {"outputs": {"NAME": {"type": "String", "value": ...}}}}
    raw = ((deployment or {}).get("properties") or {}).get("outputs") or {}
    out: Dict[str, str] = {}
    for key, item in raw.items():
        value = item.get("value") if isinstance(item, dict) else item
        if value is not None:
            out[key] = str(value)
    # az reports output names with altered casing (e.g. azurE_OPENAI_ENDPOINT)
    upper = {k.upper(): v for k, v in out.items()}
    return {k: upper.get(k.upper(), "") for k in REQUIRED_OUTPUTS}
