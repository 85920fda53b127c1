"""Backup service helpers for scenario scripts.

Relies on ``vault_path`` from the recovery services module; all modules share
one namespace, so the name resolves when a helper is called.
"""


def list_protected_items(session, resource_group, vault_name, provider=None):
    """Return the protected items registered in a vault."""
    client = session.clients.backup
    params = {}
    if provider:
        params["$filter"] = f"backupManagementType eq '{provider}'"
    response = client.get(
        vault_path(session, resource_group, vault_name) + "/backupProtectedItems",
        params=params,
    )
    response.raise_for_status()
    return response.json().get("value", [])


def list_backup_jobs(session, resource_group, vault_name):
    """Return the backup jobs recorded in a vault."""
    client = session.clients.backup
    response = client.get(
        vault_path(session, resource_group, vault_name) + "/backupJobs"
    )
    response.raise_for_status()
    return response.json().get("value", [])


def list_policies(session, resource_group, vault_name):
    """Return the backup policies defined in a vault."""
    client = session.clients.backup
    response = client.get(
        vault_path(session, resource_group, vault_name) + "/backupPolicies"
    )
    response.raise_for_status()
    return response.json().get("value", [])
