class EventType:
    """Centralized event names published by rebindkit."""

    # A rebind session started listening (payload: slot)
    REBIND_STARTED = "rebind.started"

    # A captured input was committed (payload: slot, label, path)
    REBIND_SUCCEEDED = "rebind.succeeded"

    # A captured input failed validation (payload: slot, reason, path)
    REBIND_REJECTED = "rebind.rejected"

    # A session ended without a commit (payload: slot, reason)
    REBIND_CANCELED = "rebind.canceled"

    # Saved keybinds changed; dispatchers should refresh cached bindings
    KEYBINDS_UPDATED = "keybinds.updated"

    # One or more slots were reset to defaults (payload: slots)
    KEYBINDS_RESET = "keybinds.reset"

    # Reset could not read the defaults snapshot (payload: reason)
    KEYBINDS_RESET_FAILED = "keybinds.reset_failed"

    # Autosave preference flipped (payload: enabled)
    AUTOSAVE_CHANGED = "keybinds.autosave_changed"

    # Settings file was unreadable and has been replaced with fresh settings
    SETTINGS_RECOVERED = "settings.recovered"
