DOWNLOADS_COLLECTION = "downloads"
USERS_COLLECTION = "users"
COMMUNITY_LINKS_COLLECTION = "communityLinks"
SETTINGS_COLLECTION = "settings"

SETTINGS_DOC_ID = "app-settings"

SESSION_STORAGE_KEY = "linklocker-user"
DEFAULT_AVATAR_URL = "https://placehold.co/100x100.png"
