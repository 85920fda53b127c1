"""Recovery Services vault helpers for scenario scripts."""

VAULT_PROVIDER = "providers/Microsoft.RecoveryServices/vaults"


def vault_path(session, resource_group, vault_name):
    """Return the ARM path of a Recovery Services vault."""
    client = session.clients.recovery_vault
    return client.subscription_path(
        "resourceGroups", resource_group, VAULT_PROVIDER, vault_name
    )


def get_vault(session, resource_group, vault_name):
    """Return the vault as parsed JSON."""
    client = session.clients.recovery_vault
    response = client.get(vault_path(session, resource_group, vault_name))
    response.raise_for_status()
    return response.json()


def list_vaults(session, resource_group):
    """Return the vaults in *resource_group*."""
    client = session.clients.recovery_vault
    response = client.get(
        client.subscription_path("resourceGroups", resource_group, VAULT_PROVIDER)
    )
    response.raise_for_status()
    return response.json().get("value", [])
