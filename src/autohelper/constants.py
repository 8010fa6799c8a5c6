"""Shared constants for watcher selectors, phrases and default timings."""

HELPER_NAME = "AutoHelper"
HELPER_VERSION = "3.1.0"

# Conversation pane candidates, first attached and visible match wins.
SCOPE_SELECTORS = (
    '[data-testid="conversation-pane"]',
    ".composer-bar",
    ".aichat-container",
    ".conversations",
)

# Resume banner (tool-call ceiling).
RESUME_BANNER_PHRASES = (
    "stop the agent after 25 tool calls",
    "Note: we default stop",
)
RESUME_LINK_SELECTOR = 'a, span.markdown-link, [role="link"], [data-link]'
RESUME_LINK_TEXT = "resume the conversation"

# Connection failure banner.
CONNECTION_FAILED_PHRASE = "Connection failed"
TRY_AGAIN_SELECTOR = 'button, [role="button"], a, span'
TRY_AGAIN_TEXT = "try again"
RETRY_ICON_SELECTOR = (
    '.codicon-refresh, .codicon-debug-restart, '
    '[aria-label*="retry" i], [title*="retry" i]'
)
COMPOSER_INPUT_SELECTOR = (
    '.composer-input-area, .aislash-editor-input, [contenteditable="true"], textarea'
)
RESUME_BUTTON_SELECTOR = 'button, [role="button"], a, span'
RESUME_BUTTON_TEXT = "resume"

# Tab strip used by the idle cycle.
TAB_STRIP_SELECTOR = '[role="tablist"]'
TAB_ITEM_SELECTOR = '[role="tab"]'

HIGHLIGHT_CSS = "3px solid #f59e0b"
TAB_STRIP_HIGHLIGHT_CSS = "2px dashed #3BA7FF"

TOAST_ELEMENT_ID = "__autohelper_toast"
ACTIVITY_BINDING = "__autohelperActivity"
CONTROL_BINDING = "__autohelperControl"
CONTROL_GLOBAL = "AutoHelper"
CONTROL_METHODS = ("start", "stop", "showToast", "setDebug", "clearAllIntervals")
ACTIVITY_EVENTS = ("pointerdown", "keydown", "wheel", "touchstart")

SEVERITY_NORMAL = "normal"
SEVERITY_ERROR = "error"

# Default timings (ms).
DEFAULT_RESUME_POLL_MS = 1000
DEFAULT_RETRY_POLL_MS = 1000
DEFAULT_RESUME_BUTTON_POLL_MS = 1000
DEFAULT_IDLE_POLL_MS = 10_000
DEFAULT_PREVIEW_DELAY_MS = 1000
DEFAULT_HIGHLIGHT_MS = 3000
DEFAULT_BUSY_SETTLE_MS = 3500
DEFAULT_RESUME_DEBOUNCE_MS = 3000
DEFAULT_BACKOFF_FLOOR_MS = 1000
DEFAULT_BACKOFF_CEILING_MS = 5 * 60_000
DEFAULT_IDLE_NOTICE_MS = 10_000
DEFAULT_IDLE_PRE_WARNING_MS = 30_000
DEFAULT_IDLE_TIMEOUT_MS = 60_000
DEFAULT_TAB_DWELL_MS = 15_000
DEFAULT_TAB_STRIP_CUE_MS = 3000
DEFAULT_TOAST_MS = 8000
