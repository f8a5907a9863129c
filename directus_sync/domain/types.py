from typing import Literal

ItemStatus = Literal["success", "error"]
ItemAction = Literal["created", "updated"]

# Written by the server, never copied from source to target
SERVER_MANAGED_FIELDS = ("id", "date_created", "date_updated", "user_created", "user_updated")
