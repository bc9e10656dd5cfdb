# Example user configuration for envtrace
# Place this file at ~/.envtrace/config.py
# Environment variables (ENVTRACE_LOG_FILE, ENVTRACE_VERBOSE, ENVTRACE_ACTIONS)
# and keyword arguments to Tracer(...) take precedence over these values.

log_file = "envtrace.log"                      # Rewritten after every run
verbose = True                                 # Echo each action as it happens
actions = ["READ", "WRITE", "CALL", "HOOK_CALL"]
