STATE_DIR_NAME = ".taskboard"
CONFIG_FILE = "config.yaml"
TASKS_FILE = "tasks.yaml"
TASKS_LOCK_FILE = "tasks.lock"
ARTIFACTS_DIR = "artifacts"
EVENTS_FILE = "task_events.jsonl"
WINDOWS_LOCK_BYTES = 4096

# Spacing between consecutive positions for new tasks and bottom drops.
DEFAULT_POSITION_STEP = 1000.0
# Adjacent positions closer than this trigger a column renormalization.
DEFAULT_RENORMALIZE_EPSILON = 1e-6

DEFAULT_API_URL = "http://127.0.0.1:8000"
API_URL_ENV_VAR = "TASKBOARD_API_URL"

CONNECTIVITY_FAILURE_MESSAGE = (
    "Connection to server failed. Please ensure the task board server is running."
)
