# Importing every table module here guarantees string-based relationship
# targets ("Profile", "Split", ...) resolve no matter which model a caller
# imports first.
from xpenseshare.app.models import (  # noqa: F401
    common,
    expense,
    group,
    invitation,
    membership,
    notification,
    profile,
    settlement,
    split,
)
