"""Core: settings, errors, parameters, results and the connection layer."""
