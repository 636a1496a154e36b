"""Shared summary-record keys to avoid magic strings across summaly modules."""

from __future__ import annotations

# Summary record keys (JSON shape returned to callers)
K_URL = "url"
K_TITLE = "title"
K_ICON = "icon"
K_DESCRIPTION = "description"
K_THUMBNAIL = "thumbnail"
K_SITENAME = "sitename"
K_PLAYER = "player"
K_SENSITIVE = "sensitive"
K_ACTIVITY_PUB = "activityPub"
K_OEMBED = "oembed"

# Player keys
K_PLAYER_URL = "url"
K_PLAYER_WIDTH = "width"
K_PLAYER_HEIGHT = "height"
K_PLAYER_ALLOW = "allow"

# Inbound query parameters
Q_URL = "url"
Q_LANG = "lang"
Q_USER_AGENT = "userAgent"
Q_RESPONSE_TIMEOUT = "responseTimeout"
Q_CONTENT_LENGTH_LIMIT = "contentLengthLimit"
