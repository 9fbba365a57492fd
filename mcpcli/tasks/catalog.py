"""Static catalog of registry administration tasks.

Each builder is a pure function from field values to a ``ScriptCommand``; nothing
here executes a process.
"""

from mcpcli.core.types import ScriptCommand, TaskContext
from mcpcli.tasks.types import ScriptTask, TaskField

SERVICE_SCRIPT = "cli/service_mgmt.sh"
IMPORT_SCRIPT = "cli/import_from_anthropic_registry.sh"
USER_SCRIPT = "cli/user_mgmt.sh"
DIAGNOSTIC_SCRIPT = "api/test-management-api-e2e.sh"
MCP_CLIENT_SCRIPT = "cli/mcp_client.py"

DEFAULT_IMPORT_LIST = "cli/import_server_list.txt"
DEFAULT_INGRESS_TOKEN_FILE = ".oauth-tokens/ingress.json"


def _bash(script: str, *args: str) -> ScriptCommand:
    return ScriptCommand(program="bash", args=[script, *args])


def _optional(flag: str, value: str | None) -> list[str]:
    return [flag, value] if value else []


def _gateway_env(context: TaskContext) -> dict[str, str]:
    env = {"GATEWAY_URL": context.gateway_base_url, "MCP_GATEWAY_URL": context.gateway_url}
    if context.gateway_token:
        env["INGRESS_TOKEN"] = context.gateway_token
    return env


def _base_url(context: TaskContext) -> str:
    return context.gateway_base_url


########################################################
########   Gateway service toolkit   #########
########################################################


def _service_add(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    command = _bash(SERVICE_SCRIPT, "add", values["configPath"])
    command.env.update(_gateway_env(context))
    return command


def _service_delete(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    args = ["delete", values["servicePath"]]
    if values.get("serviceName"):
        args.append(values["serviceName"])
    command = _bash(SERVICE_SCRIPT, *args)
    command.env.update(_gateway_env(context))
    return command


def _service_monitor(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    args = ["monitor"]
    if values.get("configPath"):
        args.append(values["configPath"])
    command = _bash(SERVICE_SCRIPT, *args)
    command.env.update(_gateway_env(context))
    return command


def _service_test(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    command = _bash(SERVICE_SCRIPT, "test", values["configPath"])
    command.env.update(_gateway_env(context))
    return command


def _service_add_to_groups(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    command = _bash(SERVICE_SCRIPT, "add-to-groups", values["serverName"], values["groups"])
    command.env.update(_gateway_env(context))
    return command


########################################################
########   Registry imports   #########
########################################################


def _import_dry_run(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    command = _bash(IMPORT_SCRIPT, "--dry-run", "--import-list", values["importList"])
    command.env.update(_gateway_env(context))
    return command


def _import_apply(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    command = _bash(IMPORT_SCRIPT, "--import-list", values["importList"])
    command.env.update(_gateway_env(context))
    return command


########################################################
########   User & M2M management   #########
########################################################


def _user_create_m2m(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return _bash(
        USER_SCRIPT,
        "create-m2m",
        "--name",
        values["name"],
        "--groups",
        values["groups"],
        *_optional("--description", values.get("description")),
    )


def _user_create_human(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return _bash(
        USER_SCRIPT,
        "create-human",
        "--username",
        values["username"],
        "--email",
        values["email"],
        "--firstname",
        values["firstname"],
        "--lastname",
        values["lastname"],
        "--groups",
        values["groups"],
        *_optional("--password", values.get("password")),
    )


def _user_delete(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return _bash(USER_SCRIPT, "delete-user", "--username", values["username"], "--force")


def _user_list(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return _bash(USER_SCRIPT, "list-users")


def _user_list_groups(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return _bash(USER_SCRIPT, "list-groups")


########################################################
########   API diagnostics   #########
########################################################


def _diagnostic_run_suite(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return _bash(
        DIAGNOSTIC_SCRIPT,
        "--registry-url",
        values["baseUrl"],
        "--token-file",
        values["tokenFile"],
    )


def _diagnostic_health(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return ScriptCommand(program="curl", args=["-sS", "--max-time", "10", f"{values['baseUrl'].rstrip('/')}/health"])


def _diagnostic_mcp_ping(values: dict[str, str], context: TaskContext) -> ScriptCommand:
    return ScriptCommand(
        program="uv",
        args=["run", "python", MCP_CLIENT_SCRIPT, "--url", values["url"], "ping"],
        env=_gateway_env(context),
    )


TASK_CATALOG: dict[str, list[ScriptTask]] = {
    "service": [
        ScriptTask(
            key="service-add",
            label="Register a service",
            description="Register an MCP server from a JSON config file.",
            fields=(TaskField("configPath", "Service config path", placeholder="path/to/server.json"),),
            build=_service_add,
        ),
        ScriptTask(
            key="service-delete",
            label="Remove a service",
            description="Delete a registered MCP server by path.",
            fields=(
                TaskField("servicePath", "Service path", placeholder="/my-server"),
                TaskField("serviceName", "Service name", required=False),
            ),
            build=_service_delete,
        ),
        ScriptTask(
            key="service-monitor",
            label="Monitor services",
            description="Run health checks for all services or the one in a config file.",
            fields=(TaskField("configPath", "Service config path", required=False),),
            build=_service_monitor,
        ),
        ScriptTask(
            key="service-test",
            label="Test a service",
            description="Exercise a service's tools through the gateway.",
            fields=(TaskField("configPath", "Service config path", placeholder="path/to/server.json"),),
            build=_service_test,
        ),
        ScriptTask(
            key="service-add-to-groups",
            label="Add service to groups",
            description="Grant groups access to a registered server.",
            fields=(
                TaskField("serverName", "Server name"),
                TaskField("groups", "Comma-separated groups", placeholder="group-a,group-b"),
            ),
            build=_service_add_to_groups,
        ),
    ],
    "import": [
        ScriptTask(
            key="import-dry-run",
            label="Preview registry import",
            description="Show what would be imported from the Anthropic registry list.",
            fields=(TaskField("importList", "Import list file", default=DEFAULT_IMPORT_LIST),),
            build=_import_dry_run,
        ),
        ScriptTask(
            key="import-apply",
            label="Import servers",
            description="Import servers from the Anthropic registry list.",
            fields=(TaskField("importList", "Import list file", default=DEFAULT_IMPORT_LIST),),
            build=_import_apply,
        ),
    ],
    "user": [
        ScriptTask(
            key="user-create-m2m",
            label="Create M2M account",
            description="Create a Keycloak service account for machine-to-machine access.",
            fields=(
                TaskField("name", "Client name"),
                TaskField("groups", "Comma-separated groups"),
                TaskField("description", "Description", required=False),
            ),
            build=_user_create_m2m,
        ),
        ScriptTask(
            key="user-create-human",
            label="Create human user",
            description="Create a Keycloak user account.",
            fields=(
                TaskField("username", "Username"),
                TaskField("email", "Email"),
                TaskField("firstname", "First name"),
                TaskField("lastname", "Last name"),
                TaskField("groups", "Comma-separated groups"),
                TaskField("password", "Initial password", required=False),
            ),
            build=_user_create_human,
        ),
        ScriptTask(
            key="user-delete",
            label="Delete user",
            description="Delete a user or service account.",
            fields=(TaskField("username", "Username"),),
            build=_user_delete,
        ),
        ScriptTask(
            key="user-list",
            label="List users",
            description="List Keycloak users.",
            build=_user_list,
        ),
        ScriptTask(
            key="user-list-groups",
            label="List groups",
            description="List Keycloak groups.",
            build=_user_list_groups,
        ),
    ],
    "diagnostic": [
        ScriptTask(
            key="diagnostic-run-suite",
            label="Run API test suite",
            description="Run the management API end-to-end checks.",
            fields=(
                TaskField("baseUrl", "Registry base URL", default=_base_url),
                TaskField("tokenFile", "Token file", default=DEFAULT_INGRESS_TOKEN_FILE),
            ),
            build=_diagnostic_run_suite,
        ),
        ScriptTask(
            key="diagnostic-health",
            label="Registry health",
            description="Fetch the registry /health endpoint.",
            fields=(TaskField("baseUrl", "Registry base URL", default=_base_url),),
            build=_diagnostic_health,
        ),
        ScriptTask(
            key="diagnostic-mcp-ping",
            label="MCP client ping",
            description="Ping the gateway through the reference Python MCP client.",
            fields=(TaskField("url", "Gateway URL", default=lambda context: context.gateway_url),),
            build=_diagnostic_mcp_ping,
        ),
    ],
}
