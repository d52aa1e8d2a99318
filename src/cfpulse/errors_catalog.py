"""Actionable error catalog for cfpulse."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "cf_not_found": {
        "what": "Cloud Foundry CLI not found: {binary}",
        "next": "Install cf CLI v7 or newer, or point `cf_binary` at an existing executable.",
    },
    "cf_too_old": {
        "what": "Cloud Foundry CLI {found} is too old; version {required} or newer is required.",
        "next": "Upgrade the cf CLI; `copy-source` and `app --guid` need v7+.",
    },
    "missing_settings": {
        "what": "Cloud Foundry configuration is incomplete: {fields}.",
        "next": "Set CF_APIHOST, CF_USERNAME and CF_PASSWORD or add them to .cfpulse.yml.",
    },
    "app_not_found": {
        "what": "Application '{app}' was not found in {target}.",
        "next": "Check the application name and the targeted organization/space.",
    },
    "missing_runtime": {
        "what": "Application '{app}' reports no buildpack.",
        "next": "Only buildpack apps that have staged at least once can be cloned.",
    },
    "placeholder_failed": {
        "what": "Failed to create {runtime} placeholder for app: {app}.",
        "next": "Check free space and permissions of the temporary directory.",
    },
    "target_failed": {
        "what": "Could not target organization '{organization}' and space '{space}'.",
        "next": "Verify both exist and that the configured user has access to them.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
