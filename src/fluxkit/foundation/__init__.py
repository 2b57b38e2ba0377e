"""Foundation: errors, configuration and the tool registry."""
