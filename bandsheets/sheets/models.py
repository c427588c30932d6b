from enum import StrEnum


class SharePermission(StrEnum):
    read = "read"
    edit = "edit"


# Keys the server owns; never taken from a client-supplied sheet payload
SERVER_MANAGED_FIELDS = frozenset(
    {
        "_id",
        "__v",
        "owner",
        "sharedWith",
        "isPublic",
        "createdAt",
        "updatedAt",
        "dateImported",
    }
)
