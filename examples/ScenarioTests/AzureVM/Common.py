"""Shared settings for the AzureVM example scenarios."""

RESOURCE_GROUP = "backup-rg"
VAULT_NAME = "backup-vault"
