"""Queries and cleanup of OS-level users and groups."""

from outfitter.system.command import Command, CommandError
from outfitter.system.worker import Worker


async def user_exists(system: Worker, name: str) -> bool:
    return await system.succeeds(Command(executable="id", args=["-u", name]))


async def group_exists(system: Worker, name: str) -> bool:
    return await system.succeeds(Command(executable="getent", args=["group", name]))


async def login_shell(system: Worker, name: str) -> str:
    """Get the login shell recorded in the passwd database.

    Returns:
        The shell path, or an empty string if the user is unknown
    """
    try:
        output = await system.run(Command(executable="getent", args=["passwd", name]))
    except CommandError:
        return ""
    entry = output.decode("utf-8", errors="replace").strip()
    fields = entry.split(":")
    return fields[6] if len(fields) >= 7 else ""


async def user_groups(system: Worker, name: str) -> list[str]:
    """List the groups a user belongs to, as recorded in the group database.

    Returns:
        Group names, or an empty list if the user is unknown
    """
    try:
        output = await system.run(Command(executable="id", args=["-nG", name]))
    except CommandError:
        return []
    return output.decode("utf-8", errors="replace").split()


async def add_to_group(system: Worker, name: str, group: str) -> None:
    """Append a supplementary group to a user.

    Raises:
        CommandError: If usermod fails
    """
    await system.run(Command(executable="usermod", args=["-aG", group, name]))


async def delete_users(system: Worker, names: list[str]) -> list[str]:
    """Delete the given users where they exist.

    Returns:
        Names of users that exist but could not be deleted
    """
    failed = []
    for name in names:
        if not await user_exists(system, name):
            continue
        if not await system.succeeds(Command(executable="userdel", args=[name])):
            failed.append(name)
    return failed


async def delete_group(system: Worker, name: str) -> bool:
    """Delete a group if it exists.

    Returns:
        False only if the group exists and could not be deleted
    """
    if not await group_exists(system, name):
        return True
    return await system.succeeds(Command(executable="groupdel", args=[name]))
