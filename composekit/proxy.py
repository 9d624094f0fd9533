"""A Service that delegates each operation to a replaceable function."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .api import (
    BuildOptions,
    ContainerProcSummary,
    ContainerSummary,
    ConvertOptions,
    CopyOptions,
    CreateOptions,
    DownOptions,
    EventsOptions,
    ImageSummary,
    ImagesOptions,
    KillOptions,
    ListOptions,
    LogConsumer,
    LogOptions,
    PauseOptions,
    PortOptions,
    PsOptions,
    PullOptions,
    PushOptions,
    RemoveOptions,
    RestartOptions,
    RunOptions,
    Service,
    Stack,
    StartOptions,
    StopOptions,
    UpOptions,
)
from .errors import NotImplementedByBackendError
from .model import Project

Interceptor = Callable[[Project], None]
"""Called with the project before a project-based operation runs."""


@dataclass
class ServiceProxy:
    """Implements :class:`Service` by calling the configured functions.

    An operation whose function is unset raises
    :class:`NotImplementedByBackendError`. Interceptors run before the
    operations that take a whole project.
    """

    build_fn: Optional[Callable[[Project, BuildOptions], None]] = None
    push_fn: Optional[Callable[[Project, PushOptions], None]] = None
    pull_fn: Optional[Callable[[Project, PullOptions], None]] = None
    create_fn: Optional[Callable[[Project, CreateOptions], None]] = None
    start_fn: Optional[Callable[[str, StartOptions], None]] = None
    restart_fn: Optional[Callable[[str, RestartOptions], None]] = None
    stop_fn: Optional[Callable[[str, StopOptions], None]] = None
    up_fn: Optional[Callable[[Project, UpOptions], None]] = None
    down_fn: Optional[Callable[[str, DownOptions], None]] = None
    logs_fn: Optional[Callable[[str, LogConsumer, LogOptions], None]] = None
    ps_fn: Optional[Callable[[str, PsOptions], "list[ContainerSummary]"]] = None
    list_fn: Optional[Callable[[ListOptions], "list[Stack]"]] = None
    convert_fn: Optional[Callable[[Project, ConvertOptions], bytes]] = None
    kill_fn: Optional[Callable[[str, KillOptions], None]] = None
    run_one_off_container_fn: Optional[Callable[[Project, RunOptions], int]] = None
    remove_fn: Optional[Callable[[str, RemoveOptions], None]] = None
    exec_fn: Optional[Callable[[str, RunOptions], int]] = None
    copy_fn: Optional[Callable[[str, CopyOptions], None]] = None
    pause_fn: Optional[Callable[[str, PauseOptions], None]] = None
    unpause_fn: Optional[Callable[[str, PauseOptions], None]] = None
    top_fn: Optional[Callable[[str, "list[str]"], "list[ContainerProcSummary]"]] = None
    events_fn: Optional[Callable[[str, EventsOptions], None]] = None
    port_fn: Optional[Callable[[str, str, int, PortOptions], "tuple[str, int]"]] = None
    images_fn: Optional[Callable[[str, ImagesOptions], "list[ImageSummary]"]] = None
    _interceptors: "list[Interceptor]" = field(default_factory=list, init=False, repr=False)

    def with_service(self, service: Service) -> "ServiceProxy":
        """Delegate every operation to ``service``."""
        self.build_fn = service.build
        self.push_fn = service.push
        self.pull_fn = service.pull
        self.create_fn = service.create
        self.start_fn = service.start
        self.restart_fn = service.restart
        self.stop_fn = service.stop
        self.up_fn = service.up
        self.down_fn = service.down
        self.logs_fn = service.logs
        self.ps_fn = service.ps
        self.list_fn = service.list
        self.convert_fn = service.convert
        self.kill_fn = service.kill
        self.run_one_off_container_fn = service.run_one_off_container
        self.remove_fn = service.remove
        self.exec_fn = service.exec
        self.copy_fn = service.copy
        self.pause_fn = service.pause
        self.unpause_fn = service.unpause
        self.top_fn = service.top
        self.events_fn = service.events
        self.port_fn = service.port
        self.images_fn = service.images
        return self

    def with_interceptor(self, *interceptors: Interceptor) -> "ServiceProxy":
        """Add interceptors run before project-based operations."""
        self._interceptors.extend(interceptors)
        return self

    @staticmethod
    def _require(fn: Optional[Callable[..., Any]]) -> Callable[..., Any]:
        if fn is None:
            raise NotImplementedByBackendError()
        return fn

    def _intercept(self, project: Project) -> None:
        for interceptor in self._interceptors:
            interceptor(project)

    def build(self, project: Project, options: BuildOptions) -> None:
        fn = self._require(self.build_fn)
        self._intercept(project)
        fn(project, options)

    def push(self, project: Project, options: PushOptions) -> None:
        fn = self._require(self.push_fn)
        self._intercept(project)
        fn(project, options)

    def pull(self, project: Project, options: PullOptions) -> None:
        fn = self._require(self.pull_fn)
        self._intercept(project)
        fn(project, options)

    def create(self, project: Project, options: CreateOptions) -> None:
        fn = self._require(self.create_fn)
        self._intercept(project)
        fn(project, options)

    def start(self, project_name: str, options: StartOptions) -> None:
        self._require(self.start_fn)(project_name, options)

    def restart(self, project_name: str, options: RestartOptions) -> None:
        self._require(self.restart_fn)(project_name, options)

    def stop(self, project_name: str, options: StopOptions) -> None:
        self._require(self.stop_fn)(project_name, options)

    def up(self, project: Project, options: UpOptions) -> None:
        fn = self._require(self.up_fn)
        self._intercept(project)
        fn(project, options)

    def down(self, project_name: str, options: DownOptions) -> None:
        self._require(self.down_fn)(project_name, options)

    def logs(self, project_name: str, consumer: LogConsumer, options: LogOptions) -> None:
        self._require(self.logs_fn)(project_name, consumer, options)

    def ps(self, project_name: str, options: PsOptions) -> "list[ContainerSummary]":
        return self._require(self.ps_fn)(project_name, options)

    def list(self, options: ListOptions) -> "list[Stack]":
        return self._require(self.list_fn)(options)

    def convert(self, project: Project, options: ConvertOptions) -> bytes:
        fn = self._require(self.convert_fn)
        self._intercept(project)
        return fn(project, options)

    def kill(self, project_name: str, options: KillOptions) -> None:
        self._require(self.kill_fn)(project_name, options)

    def run_one_off_container(self, project: Project, options: RunOptions) -> int:
        fn = self._require(self.run_one_off_container_fn)
        self._intercept(project)
        return fn(project, options)

    def remove(self, project_name: str, options: RemoveOptions) -> None:
        self._require(self.remove_fn)(project_name, options)

    def exec(self, project_name: str, options: RunOptions) -> int:
        return self._require(self.exec_fn)(project_name, options)

    def copy(self, project_name: str, options: CopyOptions) -> None:
        self._require(self.copy_fn)(project_name, options)

    def pause(self, project_name: str, options: PauseOptions) -> None:
        self._require(self.pause_fn)(project_name, options)

    def unpause(self, project_name: str, options: PauseOptions) -> None:
        self._require(self.unpause_fn)(project_name, options)

    def top(self, project_name: str, services: "list[str]") -> "list[ContainerProcSummary]":
        return self._require(self.top_fn)(project_name, services)

    def events(self, project_name: str, options: EventsOptions) -> None:
        self._require(self.events_fn)(project_name, options)

    def port(
        self, project_name: str, service: str, port: int, options: PortOptions
    ) -> "tuple[str, int]":
        return self._require(self.port_fn)(project_name, service, port, options)

    def images(self, project_name: str, options: ImagesOptions) -> "list[ImageSummary]":
        return self._require(self.images_fn)(project_name, options)