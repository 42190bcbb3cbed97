"""
kube_client.py
- Builds the Kubernetes API handles the controller is wired with.
- Mirrors client-go's BuildConfigFromFlags: no kubeconfig and no master means
  in-cluster config, otherwise the kubeconfig is loaded and master overrides its server.
- Probes the API server at startup with retries so the loop never starts blind.
"""

from dataclasses import dataclass

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException
from loguru import logger
from tenacity import retry, stop_after_attempt, wait_exponential

from preoomkiller.core.constants import STARTUP_PROBE_ATTEMPTS
from preoomkiller.core.errors import ConfigError


@dataclass(frozen=True)
class KubeClients:
    core: client.CoreV1Api
    custom: client.CustomObjectsApi
    api_client: client.ApiClient


def load_client_configuration(kubeconfig="", master=""):
    configuration = client.Configuration()

    if not kubeconfig and not master:
        try:
            config.load_incluster_config(client_configuration=configuration)
            logger.info("[kube] Loaded in-cluster config")
            return configuration
        except ConfigException:
            logger.warning("[kube] Not running in-cluster, falling back to default kubeconfig")

    try:
        config.load_kube_config(config_file=kubeconfig or None, client_configuration=configuration)
    except (ConfigException, OSError) as e:
        raise ConfigError(f"could not load kubeconfig {kubeconfig or '(default)'}: {e}") from e

    if master:
        configuration.host = master
    logger.info(f"[kube] Loaded kubeconfig {kubeconfig or '(default)'} -> {configuration.host}")
    return configuration


def build_clients(settings):
    configuration = load_client_configuration(settings.kubeconfig, settings.master)
    api_client = client.ApiClient(configuration)
    return KubeClients(
        core=client.CoreV1Api(api_client),
        custom=client.CustomObjectsApi(api_client),
        api_client=api_client,
    )


@retry(
    reraise=True,
    stop=stop_after_attempt(STARTUP_PROBE_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=2, max=10),
)
def wait_for_api(clients, request_timeout):
    """Fail fast at startup if the API server cannot be reached at all."""
    info = client.VersionApi(clients.api_client).get_code(_request_timeout=request_timeout)
    logger.info(f"[kube] Connected to API server {info.git_version}")
    return info
