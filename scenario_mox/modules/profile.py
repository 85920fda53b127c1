"""Profile helpers available to every scenario script.

Loaded into the scenario namespace, where ``session`` is already defined.
"""


def get_subscription_id(session):
    """Return the subscription the session runs against."""
    return session.environment.subscription_id


def get_resource_group(session, name):
    """Return the resource group *name* as parsed JSON."""
    client = session.clients.resource_manager
    response = client.get(client.subscription_path("resourceGroups", name))
    response.raise_for_status()
    return response.json()


def new_asset_name(session, prefix):
    """Return a resource name that replays identically in playback."""
    return session.asset_name(prefix)
