"""LSP method names."""

# Lifecycle
INITIALIZE = "initialize"
INITIALIZED = "initialized"
SHUTDOWN = "shutdown"
EXIT = "exit"

# Client -> server notifications
DID_OPEN = "textDocument/didOpen"
DID_CHANGE = "textDocument/didChange"
DID_CLOSE = "textDocument/didClose"
DID_SAVE = "textDocument/didSave"
DID_CHANGE_WATCHED_FILES = "workspace/didChangeWatchedFiles"

# Server -> client
PUBLISH_DIAGNOSTICS = "textDocument/publishDiagnostics"
LOG_MESSAGE = "window/logMessage"
SHOW_MESSAGE = "window/showMessage"
LOG_TRACE = "$/logTrace"
PROGRESS = "$/progress"
REGISTER_CAPABILITY = "client/registerCapability"
UNREGISTER_CAPABILITY = "client/unregisterCapability"
WORKSPACE_CONFIGURATION = "workspace/configuration"
WORK_DONE_PROGRESS_CREATE = "window/workDoneProgress/create"
