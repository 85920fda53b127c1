"""AzureVM backup scenarios replayed by the runnable examples."""


def test_list_backup_jobs():
    jobs = list_backup_jobs(session, RESOURCE_GROUP, VAULT_NAME)
    assert [job["name"] for job in jobs] == ["job-1"]


def test_get_vault_and_group():
    group = get_resource_group(session, RESOURCE_GROUP)
    assert group["location"] == "westus"
    vault = get_vault(session, RESOURCE_GROUP, VAULT_NAME)
    assert vault["name"] == VAULT_NAME
