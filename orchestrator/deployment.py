# ============================================================================
# DEPLOYMENT ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Service deployment lifecycle
# PURPOSE: Drive resource group -> function app -> package -> upload
# CREATED: 12 OCT 2026
# ============================================================================
"""
Deployment Orchestrator

Runs the lifecycle of one service against one Function App:

Full deploy:
1. Login (service principal or DefaultAzureCredential)
2. Resource group create-or-update (<service>-rg)
3. Function App create-or-update (ARM template, <service>-rg-deployment)
4. Wait for the SCM endpoint
5. Existing-app check, list deployed functions
6. Resolve and package every function (parallel)
7. Upload every packaged archive (parallel)
8. Delete deployed functions the manifest no longer declares (parallel)

Parallel phases fire every task and await all of them; a failing task
never cancels its siblings, and a function that fails to package is
simply not uploaded. Failures are collected into the DeploymentResult and
raised as one DeploymentError after cleanup. Single-step phases (login,
provisioning) raise immediately.

All per-run state lives in a DeploymentContext owned by the orchestrator.

Usage:
    orchestrator = DeploymentOrchestrator(manifest)
    result = await orchestrator.deploy()
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import httpx
from azure.core.exceptions import AzureError

from bindings import BindingError, BindingResolver
from core.config import Defaults, get_defaults
from core.contracts import DeploymentPhase
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import FunctionMetadata, ServiceManifest
from infrastructure.auth import AzureAuthError, AzureSession, ServicePrincipal, resolve_service_principal
from infrastructure.kudu import KuduClient, KuduError
from infrastructure.resources import (
    ResourceManager,
    ResourceProvisioningError,
    build_function_app_deployment,
)
from services.packager import FunctionArchive, FunctionPackager, PackagingError

logger = get_logger(__name__, ComponentType.ORCHESTRATOR)

HTTP_EVENT_TYPE = "http"


class DeploymentError(Exception):
    """Raised when a deployment phase fails."""

    def __init__(
        self,
        phase: DeploymentPhase,
        message: str,
        failures: Optional[Dict[str, str]] = None,
        result: Optional["DeploymentResult"] = None,
    ):
        self.phase = phase
        self.message = message
        self.failures = failures or {}
        self.result = result
        super().__init__(f"{phase.value}: {message}")


# ============================================================================
# PER-RUN STATE
# ============================================================================

@dataclass
class DeploymentContext:
    """State of one orchestrator run."""
    app_name: str
    resource_group: str
    deployment_name: str
    archives: Dict[str, FunctionArchive] = field(default_factory=dict)
    deployed_function_names: List[str] = field(default_factory=list)
    existing_app: bool = False
    session: Optional[AzureSession] = None
    master_key: Optional[str] = None
    invocation_id: Optional[str] = None

    @classmethod
    def for_service(cls, service: str, defaults: Optional[Defaults] = None) -> "DeploymentContext":
        deployment = (defaults or get_defaults()).deployment
        resource_group = f"{service}{deployment.resource_group_suffix}"
        return cls(
            app_name=service,
            resource_group=resource_group,
            deployment_name=f"{resource_group}{deployment.deployment_suffix}",
        )


@dataclass
class DeploymentResult:
    """Outcome of a lifecycle operation."""
    service: str
    operation: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    packaged: List[str] = field(default_factory=list)
    uploaded: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    failed_phase: Optional[DeploymentPhase] = None

    @property
    def success(self) -> bool:
        return not self.failures

    def complete(self) -> "DeploymentResult":
        self.completed_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "operation": self.operation,
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "packaged": self.packaged,
            "uploaded": self.uploaded,
            "removed": self.removed,
            "failures": self.failures,
            "failed_phase": self.failed_phase.value if self.failed_phase else None,
        }


# ============================================================================
# ORCHESTRATOR
# ============================================================================

SessionFactory = Callable[[ServicePrincipal], AzureSession]
ResourceManagerFactory = Callable[[AzureSession], ResourceManager]
KuduFactory = Callable[[str, Callable[[], Awaitable[str]]], KuduClient]


class DeploymentOrchestrator:
    """
    Deploys, invokes and removes one service.

    Collaborators are built lazily from the manifest; tests inject
    factories returning mocks.
    """

    def __init__(
        self,
        manifest: ServiceManifest,
        resolver: Optional[BindingResolver] = None,
        packager: Optional[FunctionPackager] = None,
        session_factory: Optional[SessionFactory] = None,
        resource_manager_factory: Optional[ResourceManagerFactory] = None,
        kudu_factory: Optional[KuduFactory] = None,
        defaults: Optional[Defaults] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            manifest: Loaded service manifest
            resolver: Binding resolver (shared catalog index by default)
            packager: Function packager (under manifest.service_path by default)
            session_factory: Builds the AzureSession from the service principal
            resource_manager_factory: Builds the ARM client wrapper
            kudu_factory: Builds the SCM client from (app name, token provider)
            defaults: Configuration defaults
        """
        self.manifest = manifest
        self.defaults = defaults or get_defaults()
        self.resolver = resolver or BindingResolver(defaults=self.defaults.bindings)
        self.packager = packager or FunctionPackager(
            manifest.service_path or ".",
            self.defaults.deployment.functions_folder,
        )
        self._session_factory = session_factory or AzureSession
        self._resource_manager_factory = resource_manager_factory or ResourceManager
        self._kudu_factory = kudu_factory or KuduClient

        self.context = DeploymentContext.for_service(manifest.service, self.defaults)
        self._resource_manager: Optional[ResourceManager] = None
        self._kudu: Optional[KuduClient] = None

    # ------------------------------------------------------------------
    # COLLABORATORS
    # ------------------------------------------------------------------

    @property
    def resource_manager(self) -> ResourceManager:
        if self._resource_manager is None:
            self._resource_manager = self._resource_manager_factory(self._require_session())
        return self._resource_manager

    @property
    def kudu(self) -> KuduClient:
        if self._kudu is None:
            session = self._require_session()
            self._kudu = self._kudu_factory(self.context.app_name, session.get_token_async)
        return self._kudu

    def _require_session(self) -> AzureSession:
        if self.context.session is None:
            raise DeploymentError(DeploymentPhase.LOGIN, "not logged in")
        return self.context.session

    async def close(self) -> None:
        """Release HTTP clients and credentials."""
        if self._kudu is not None:
            await self._kudu.aclose()
            self._kudu = None
        if self._resource_manager is not None:
            self._resource_manager.close()
            self._resource_manager = None
        if self.context.session is not None:
            self.context.session.close()

    async def __aenter__(self) -> "DeploymentOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # LIFECYCLE OPERATIONS
    # ------------------------------------------------------------------

    async def deploy(self) -> DeploymentResult:
        """
        Full deployment of every function in the manifest.

        Raises:
            DeploymentError: A provisioning step failed, or any function failed
                (raised after every function was attempted)
        """
        result = DeploymentResult(service=self.manifest.service, operation="deploy")

        with log_context(service=self.manifest.service):
            logger.info(f"Deploying service: {self.manifest.service}")

            await self.login()
            await self.create_resource_group()
            await self.create_function_app()
            await self.wait_for_scm()
            await self.load_deployed_functions()
            await self.package_functions(self.manifest.function_names(), result)
            await self.upload_functions(result)
            await self.cleanup_stale_functions(result)

        self._raise_for_result(result)
        logger.info(
            f"Deployed {len(result.uploaded)} functions to {self.context.app_name}"
        )
        return result.complete()

    async def deploy_function(self, function_name: str) -> DeploymentResult:
        """Resolve, package and upload a single function to an existing app."""
        self._require_function(function_name)
        result = DeploymentResult(service=self.manifest.service, operation="deploy-function")

        with log_context(service=self.manifest.service, function_name=function_name):
            await self.login()
            await self.package_functions([function_name], result)
            await self.upload_functions(result)

        self._raise_for_result(result)
        return result.complete()

    async def remove(self) -> DeploymentResult:
        """Delete the ARM deployment, then the whole resource group."""
        result = DeploymentResult(service=self.manifest.service, operation="remove")

        with log_context(service=self.manifest.service, phase=DeploymentPhase.REMOVE.value):
            await self.login()
            await self._arm_call(
                DeploymentPhase.REMOVE,
                self.resource_manager.delete_deployment,
                self.context.resource_group,
                self.context.deployment_name,
            )
            await self._arm_call(
                DeploymentPhase.REMOVE,
                self.resource_manager.delete_resource_group,
                self.context.resource_group,
            )
            result.removed.append(self.context.resource_group)
            log_checkpoint("service_removed", {"resource_group": self.context.resource_group})

        return result.complete()

    async def invoke(
        self,
        function_name: str,
        event_type: str = HTTP_EVENT_TYPE,
        data: Any = None,
    ) -> str:
        """
        Invoke a deployed function.

        http: GET https://<app>.azurewebsites.net/api/<name>?<data>
        otherwise: POST /admin/functions/<name> with the host master key

        Returns:
            Response body
        """
        self._require_function(function_name)

        with log_context(
            service=self.manifest.service,
            function_name=function_name,
            phase=DeploymentPhase.INVOKE.value,
        ):
            await self.login()
            if event_type == HTTP_EVENT_TYPE:
                if data is not None and not isinstance(data, dict):
                    raise DeploymentError(
                        DeploymentPhase.INVOKE,
                        "http invocation data must be a mapping of query parameters",
                    )
                logger.info(f"Invoking {function_name} over HTTP")
                response = await self._kudu_call(
                    DeploymentPhase.INVOKE, self.kudu.invoke_http, function_name, data
                )
            else:
                if self.context.master_key is None:
                    self.context.master_key = await self._kudu_call(
                        DeploymentPhase.INVOKE, self.kudu.get_master_key
                    )
                logger.info(f"Invoking {function_name} through the admin API")
                response = await self._kudu_call(
                    DeploymentPhase.INVOKE,
                    self.kudu.invoke_admin,
                    function_name,
                    self.context.master_key,
                    data,
                )

        return response.text

    async def logs(self, function_name: str) -> Optional[str]:
        """Output of the most recent invocation, or None if it never ran."""
        self._require_function(function_name)

        with log_context(
            service=self.manifest.service,
            function_name=function_name,
            phase=DeploymentPhase.LOGS.value,
        ):
            await self.login()
            invocation_id = await self._kudu_call(
                DeploymentPhase.LOGS, self.kudu.get_latest_invocation_id, function_name
            )
            self.context.invocation_id = invocation_id
            if invocation_id is None:
                logger.info(f"No invocations recorded for {function_name}")
                return None
            return await self._kudu_call(
                DeploymentPhase.LOGS, self.kudu.get_invocation_output, invocation_id
            )

    async def stream_logs(self, function_name: str) -> AsyncIterator[str]:
        """Live log output of a function, chunk by chunk, until the stream closes."""
        self._require_function(function_name)
        await self.login()
        logger.info(f"Streaming logs of {function_name}")

        try:
            async for chunk in self.kudu.stream_logs(function_name):
                yield chunk
        except (KuduError, httpx.HTTPError) as e:
            logger.error(f"{DeploymentPhase.LOGS.value} failed: {e}")
            raise DeploymentError(DeploymentPhase.LOGS, str(e)) from e

    def resolve(self, function_names: Optional[List[str]] = None) -> Dict[str, FunctionMetadata]:
        """Resolve bindings without touching Azure."""
        if function_names is None:
            return self.resolver.resolve_service(self.manifest)
        return {
            name: self.resolver.resolve_function(name, self._require_function(name))
            for name in function_names
        }

    # ------------------------------------------------------------------
    # PHASES
    # ------------------------------------------------------------------

    async def login(self) -> None:
        if self.context.session is not None:
            return

        with log_context(phase=DeploymentPhase.LOGIN.value):
            try:
                principal = resolve_service_principal(self.manifest.provider)
                session = self._session_factory(principal)
                await asyncio.to_thread(session.login)
            except AzureAuthError as e:
                raise DeploymentError(DeploymentPhase.LOGIN, str(e)) from e
            self.context.session = session

    async def create_resource_group(self) -> None:
        with log_context(phase=DeploymentPhase.RESOURCE_GROUP.value):
            await self._arm_call(
                DeploymentPhase.RESOURCE_GROUP,
                self.resource_manager.create_resource_group,
                self.context.resource_group,
                self.manifest.provider.location,
                {"service": self.manifest.service},
            )
            log_checkpoint("resource_group_ready", {"resource_group": self.context.resource_group})

    async def create_function_app(self) -> None:
        with log_context(phase=DeploymentPhase.FUNCTION_APP.value):
            logger.info(f"Creating function app: {self.context.app_name}")
            try:
                template, parameters = build_function_app_deployment(
                    self.context.app_name,
                    self.manifest.provider,
                    self.manifest.service_path,
                    self.defaults.deployment,
                )
            except (OSError, ValueError) as e:
                raise DeploymentError(
                    DeploymentPhase.FUNCTION_APP, f"cannot load ARM template: {e}"
                ) from e

            await self._arm_call(
                DeploymentPhase.FUNCTION_APP,
                self.resource_manager.deploy_template,
                self.context.resource_group,
                self.context.deployment_name,
                template,
                parameters,
            )
            log_checkpoint("function_app_ready", {"app": self.context.app_name})

    async def wait_for_scm(self) -> None:
        wait = self.defaults.kudu.ready_wait_seconds
        if wait > 0:
            logger.info("Waiting for Kudu endpoint...")
            await asyncio.sleep(wait)

    async def load_deployed_functions(self) -> List[str]:
        with log_context(phase=DeploymentPhase.CLEANUP.value):
            self.context.existing_app = await self._kudu_call(
                DeploymentPhase.CLEANUP, self.kudu.app_exists
            )
            if not self.context.existing_app:
                logger.info("New service, no deployed functions")
                self.context.deployed_function_names = []
            else:
                self.context.deployed_function_names = await self._kudu_call(
                    DeploymentPhase.CLEANUP, self.kudu.list_functions
                )
        return self.context.deployed_function_names

    async def cleanup_stale_functions(self, result: DeploymentResult) -> None:
        """Delete deployed functions that are not part of the manifest."""
        declared = set(self.manifest.function_names())
        stale = [
            name for name in self.context.deployed_function_names if name not in declared
        ]
        if not stale:
            return

        with log_context(phase=DeploymentPhase.CLEANUP.value):
            logger.info("Deleting deployed functions not part of the current deployment")
            failures = await self._run_all(
                DeploymentPhase.CLEANUP,
                {name: self.kudu.delete_function(name) for name in stale},
                result,
            )
            result.removed.extend(name for name in stale if name not in failures)
            log_checkpoint("stale_functions_removed", {"functions": result.removed})

    async def package_functions(self, function_names: List[str], result: DeploymentResult) -> None:
        with log_context(phase=DeploymentPhase.PACKAGE.value):
            await self._run_all(
                DeploymentPhase.PACKAGE,
                {name: self._package_one(name) for name in function_names},
                result,
            )
            result.packaged.extend(
                name for name in function_names if name in self.context.archives
            )
            log_checkpoint("functions_packaged", {"functions": result.packaged})

    async def upload_functions(self, result: DeploymentResult) -> None:
        archives = list(self.context.archives.values())
        with log_context(phase=DeploymentPhase.UPLOAD.value):
            failures = await self._run_all(
                DeploymentPhase.UPLOAD,
                {
                    a.function_name: self.kudu.upload_zip(a.function_name, a.archive)
                    for a in archives
                },
                result,
            )
            result.uploaded.extend(
                a.function_name for a in archives if a.function_name not in failures
            )
            log_checkpoint("functions_uploaded", {"functions": result.uploaded})

    async def _package_one(self, function_name: str) -> FunctionArchive:
        # Log context is thread-local; never hold it across an await here
        metadata = self.resolver.resolve_function(
            function_name, self.manifest.get_function(function_name)
        )
        archive = await self.packager.package_metadata(metadata)
        self.context.archives[function_name] = archive
        return archive

    # ------------------------------------------------------------------
    # HELPERS
    # ------------------------------------------------------------------

    def _require_function(self, function_name: str):
        try:
            return self.manifest.get_function(function_name)
        except KeyError as e:
            raise DeploymentError(
                DeploymentPhase.RESOLVE,
                f"function '{function_name}' is not declared in the manifest",
            ) from e

    async def _run_all(
        self,
        phase: DeploymentPhase,
        tasks: Dict[str, Awaitable[Any]],
        result: DeploymentResult,
    ) -> Dict[str, str]:
        """Await every task; return (and record) the failures by name."""
        names = list(tasks)
        outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)

        failures: Dict[str, str] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, (BindingError, PackagingError, KuduError)):
                logger.error(f"{name}: {outcome}")
                failures[name] = str(outcome)
            elif isinstance(outcome, Exception):
                logger.exception(f"{name}: unexpected error", exc_info=outcome)
                failures[name] = f"{type(outcome).__name__}: {outcome}"
            elif isinstance(outcome, BaseException):
                # Cancellation and interrupts stop the whole run
                raise outcome
        if failures and result.failed_phase is None:
            result.failed_phase = phase
        result.failures.update(failures)
        return failures

    @staticmethod
    def _raise_for_result(result: DeploymentResult) -> None:
        if result.failures:
            names = ", ".join(sorted(result.failures))
            raise DeploymentError(
                result.failed_phase or DeploymentPhase.UPLOAD,
                f"{len(result.failures)} function(s) failed: {names}",
                result.failures,
                result.complete(),
            )

    async def _arm_call(self, phase: DeploymentPhase, func: Callable, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except (ResourceProvisioningError, AzureError) as e:
            logger.error(f"{phase.value} failed: {e}")
            raise DeploymentError(phase, str(e)) from e

    async def _kudu_call(
        self,
        phase: DeploymentPhase,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        try:
            return await func(*args)
        except (KuduError, httpx.HTTPError) as e:
            logger.error(f"{phase.value} failed: {e}")
            raise DeploymentError(phase, str(e)) from e


__all__ = [
    "DeploymentContext",
    "DeploymentError",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "HTTP_EVENT_TYPE",
]
