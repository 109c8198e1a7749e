# ── Visitor-facing list notices ──────────────────────────────────────────────
TRICK_LIST_ENDED: str = "No more trick to load!"
TRICK_NO_LIST: str = "Sorry, no trick was found!"
TRICK_TECHNICAL_ERROR: str = (
    "Sorry, something wrong happened\nduring trick list loading!\n"
    "Please contact us or try again later.\n"
)
TRICK_LIST_RESET_OUTDATED: str = (
    "Trick list was reinitialized!\nWrong total count is used\n"
    "due to outdated or unexpected value."
)
TRICK_LIST_RESET_PARAMETERS: str = "Trick list was reinitialized!\nWrong parameters are used."

COMMENT_LIST_ENDED: str = "No more comment to load!"
COMMENT_NO_LIST: str = "No comment exists for this trick at this time!"
COMMENT_TECHNICAL_ERROR: str = (
    "Sorry, something wrong happened\nduring comment list loading!\n"
    "Please contact us or try again later.\n"
)
COMMENT_LIST_RESET_OUTDATED: str = (
    "Trick comment list was reinitialized!\nWrong total count is used\n"
    "due to outdated or unexpected value."
)
COMMENT_LIST_RESET_PARAMETERS: str = (
    "Trick comment list was reinitialized!\nWrong parameters are used."
)

# ── AJAX-only endpoints ──────────────────────────────────────────────────────
AJAX_HEADER: str = "X-Requested-With"
AJAX_HEADER_VALUE: str = "XMLHttpRequest"
