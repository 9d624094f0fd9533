# composekit

composekit is a library for multi-container application projects. It lets you
describe a project and check it against the containers an engine reports. It
includes:

- the project model;
- the options and result types of a compose service API;
- a delegating service proxy;
- the rules for naming, filtering, linking, scaling and recreating containers.

## Installation

```
pip install composekit
```

To run the tests:

```
pip install "composekit[test]"
pytest
```

## Modules

- `composekit.model` is the project model:
  - `Project`, `ServiceConfig`, `BuildConfig`, `DeployConfig`,
    `HealthCheckConfig`, `ServiceDependency`, `ServiceNetworkConfig`,
    `NetworkConfig`, `VolumeConfig`, `SecretConfig` and `SSHKey`.
  - `new_mapping_with_equals` parses `KEY=VALUE` entries. A bare `KEY` maps
    to `None`.
  - `resolve_mapping` fills unset entries from a lookup function.
  - `Project.get_service` and `Project.get_services` raise `NotFoundError` for
    an unknown name.
  - `Project.for_services` keeps only the named services and their
    dependencies.
  - `Project.to_dict` gives a plain mapping with empty values left out.
- `composekit.api` defines the API types:
  - the `Service` and `LogConsumer` protocols;
  - the option dataclasses, such as `BuildOptions`, `CreateOptions`,
    `UpOptions`, `RunOptions` and `CopyOptions`;
  - result types such as `ContainerSummary`, `ImageSummary` and `Stack`;
  - `ContainerEvent` and `ContainerEventType`;
  - the `com.docker.compose.*` label names, for example `PROJECT_LABEL` and
    `SERVICE_LABEL`.

  `compose_version` reduces a version string to `major.minor.patch`.
  `sorted_publishers` orders `PortPublisher` values.
- `composekit.errors` defines the errors and the helpers that detect them:
  - `ComposeError` and its subclasses, such as `NotFoundError`,
    `ForbiddenError` and `NotImplementedByBackendError`.
  - `wrap`, which puts a message in front of an error and keeps its type.
  - Predicates such as `is_not_found_error`. They look through `__cause__`
    and `__context__`.
- `composekit.proxy` provides `ServiceProxy`:
  - It implements `Service` by calling one replaceable function per
    operation.
  - `with_service` points every function at another service.
  - `with_interceptor` adds callables. They receive the project before the
    project-based operations run: build, push, pull, create, up, convert and
    run_one_off_container.
  - An operation with no function raises `NotImplementedByBackendError`.
- `composekit.convert` converts the model into engine settings:
  - `to_moby_env` renders an environment mapping as a list of strings.
  - `to_moby_health_check` returns a `HealthConfig`. A disabled check tests
    `NONE`.
  - `to_seconds` gives whole seconds, truncated toward zero.
- `composekit.containers` works with containers:
  - The `Container` and `ContainerDetails` records.
  - The `ContainerClient` protocol, with `list_containers` and
    `inspect_container`.
  - Naming helpers: `canonical_container_name` and
    `container_name_without_project`.
  - Predicates and filters: `is_service`, `is_not_service`, `is_not_one_off`
    and `filter_containers`.
  - Listing through a client: `get_containers` and `get_specified_container`.
    The `OneOff` enum chooses whether one-off containers are included.
- `composekit.convergence` holds the reconciliation rules:
  - `get_scale` raises `ComposeError` when a replicated service has a fixed
    container name.
  - `get_container_name`, `next_container_number`, `must_recreate` and
    `update_services`.
  - `set_dependent_lifecycle` and `get_links`.
  - `is_service_healthy` and `is_service_completed`.
  - `wait_dependencies` polls until every dependency condition holds.
  - `Convergence` tracks the containers observed for each service.
- `composekit.compose` renders and rebuilds projects:
  - `convert_project` renders a project as JSON or YAML. Every `$` is doubled.
  - `project_from_name` rebuilds a project from labelled containers.
  - `actual_state` lists a project's containers through a client and rebuilds
    the project from them.
- `composekit.cp` handles copy requests:
  - `split_cp_arg` splits a copy argument such as `web:/etc/hosts` into a
    service and a path.
  - `resolve_copy` checks a `CopyOptions` request and returns a `CopyPlan`.
  - `list_containers_targeted_for_copy` picks the containers the copy
    applies to.
- `composekit.build` prepares build settings:
  - `to_build_options` turns a service's build section into a `BuildSpec`.
  - `image_build_options` derives the classic engine `ImageBuildOptions`
    from a `BuildSpec`.
  - Helpers: `flatten`, `merge_args`, `dockerfile_path` and `is_git_url`.

## Example

```python
from composekit.api import ConvertOptions, DEPENDENCIES_LABEL, PROJECT_LABEL, SERVICE_LABEL
from composekit.compose import convert_project, project_from_name
from composekit.containers import Container
from composekit.convergence import get_container_name
from composekit.model import Project, ServiceConfig

project = Project(name="shop", services=[ServiceConfig(name="web", image="nginx")])
print(get_container_name("shop", project.get_service("web"), 1))  # shop-web-1
print(convert_project(project, ConvertOptions(format="yaml")).decode())

containers = [
    Container(
        id="0123456789abcdef",
        names=["/shop-web-1"],
        image="nginx",
        labels={
            PROJECT_LABEL: "shop",
            SERVICE_LABEL: "web",
            DEPENDENCIES_LABEL: "db:service_started",
        },
    ),
    Container(
        id="fedcba9876543210",
        names=["/shop-db-1"],
        image="postgres",
        labels={PROJECT_LABEL: "shop", SERVICE_LABEL: "db"},
    ),
]
rebuilt = project_from_name(containers, "shop")
print(rebuilt.service_names())                          # ['web', 'db']
print(rebuilt.get_service("web").depends_on["db"].condition)  # service_started
```

Failures are raised as exceptions. An unknown service name raises
`NotFoundError`. A replicated service with a fixed container name raises
`ComposeError`.

## What it does not do

composekit does not talk to a container engine. The functions that list or
inspect containers take a `ContainerClient`, and you supply the object that
implements it. The library does not create, start, stop or remove containers.
It does not run image builds, attach to container output, or move file
contents for a copy. It only works out names, settings and plans for those
steps. It has no command-line program.