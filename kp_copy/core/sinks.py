"""
Extraction sinks for kp-copy.

A sink is the process that reads the tar stream on stdin and materialises it
under the destination root. The pipeline only knows the `ExtractionSink`
interface; each runtime gets its own variant.
"""

from __future__ import annotations

import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from kp_copy.common.config import CopyConfig
from kp_copy.common.constants import TAR_EXTRACT_ARGS, TAR_NO_SAME_OWNER
from kp_copy.common.errors import SinkError, UsageError
from kp_copy.common.logging_config import get_logger

_log = get_logger(__name__)


def tar_extract_command(destination_root: str) -> List[str]:
    """Command that extracts a tar stream from stdin under `destination_root`."""
    return [*TAR_EXTRACT_ARGS, "-C", destination_root, TAR_NO_SAME_OWNER]


class ExtractionSink(ABC):
    """Starts a process that consumes a tar stream on stdin."""

    @abstractmethod
    def command(self, destination_root: str) -> List[str]:
        """Return the argv extracting a stream under `destination_root`."""

    def describe(self) -> Dict[str, str]:
        """Identity of the copy target, used for error context."""
        return {}

    def start(self, destination_root: str) -> subprocess.Popen:
        """Start the sink with piped stdin, stdout and stderr.

        Raises:
            SinkError: The process could not be started
        """
        command = self.command(destination_root)
        _log.debug("Running command: %s", command)
        try:
            return subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise SinkError(f"Failed to start command {command}: {exc}") from exc


class DockerExecSink(ExtractionSink):
    """Extract through `docker exec` in a running container."""

    def __init__(self, container: str, docker_bin: str = "docker"):
        if not container:
            raise UsageError("A container ID is required for docker exec")
        self.container = container
        self.docker_bin = docker_bin

    def command(self, destination_root: str) -> List[str]:
        return [self.docker_bin, "exec", "-i", self.container, *tar_extract_command(destination_root)]

    def describe(self) -> Dict[str, str]:
        return {"container": self.container}


class KubectlExecSink(ExtractionSink):
    """Extract through `kubectl exec` in a pod, optionally naming container and namespace."""

    def __init__(self, pod: str, container: Optional[str] = None,
                 namespace: Optional[str] = None, kubectl_bin: str = "kubectl"):
        if not pod:
            raise UsageError("A pod name is required for kubectl exec")
        self.pod = pod
        self.container = container or None
        self.namespace = namespace or None
        self.kubectl_bin = kubectl_bin

    def command(self, destination_root: str) -> List[str]:
        command = [self.kubectl_bin, "exec", self.pod]
        if self.namespace:
            command.extend(["--namespace", self.namespace])
        if self.container:
            command.extend(["-c", self.container])
        command.extend(["-i", "--"])
        command.extend(tar_extract_command(destination_root))
        return command

    def describe(self) -> Dict[str, str]:
        return {
            "namespace": self.namespace or "",
            "pod": self.pod,
            "container": self.container or "",
        }


class LocalExtractSink(ExtractionSink):
    """Extract into a local directory with the bundled streaming extractor."""

    def __init__(self, python_bin: Optional[str] = None):
        self.python_bin = python_bin or sys.executable

    def command(self, destination_root: str) -> List[str]:
        return [self.python_bin, "-m", "kp_copy.extract", destination_root]

    def describe(self) -> Dict[str, str]:
        return {"target": "local"}


def select_sink(container: Optional[str] = None, pod: Optional[str] = None,
                namespace: Optional[str] = None, config: Optional[CopyConfig] = None) -> ExtractionSink:
    """Pick the sink variant for the given target description.

    Without a pod the target is a docker container; with a pod it is a
    Kubernetes pod, optionally qualified by container and namespace.
    """
    config = config or CopyConfig()
    if not container and not pod:
        raise UsageError("Please, provide at least a container ID or a pod name")
    if not pod:
        return DockerExecSink(container, docker_bin=config.docker_bin)  # type: ignore[arg-type]
    return KubectlExecSink(pod, container=container, namespace=namespace, kubectl_bin=config.kubectl_bin)


__all__ = [
    "DockerExecSink",
    "ExtractionSink",
    "KubectlExecSink",
    "LocalExtractSink",
    "select_sink",
    "tar_extract_command",
]
