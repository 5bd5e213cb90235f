#===============================================================================
#  WAM_Web_App_Manager | constants.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Central place for file/folder naming conventions, entry markers, categories
#  and the ordered list of browsers we know how to drive.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

APP_TITLE = "WAM - Web App Manager"
APP_DIR_NAME = "wam"
SETTINGS_FILE_NAME = "settings.json"

ENTRY_PREFIX = "wam-"
ENTRY_SUFFIX = ".desktop"
WM_CLASS_PREFIX = "WAM-"
DESKTOP_GROUP = "Desktop Entry"

# Marker that identifies our entries among everything else in ~/.local/share/applications
MARKER_KEY = "X-WAM-Managed"
MARKER_VALUE = "true"

FALLBACK_ICON_NAME = "applications-internet"

# Label shown to the user -> freedesktop main category
CATEGORIES = {
    "Web": "Network",
    "Accessories": "Utility",
    "Education": "Education",
    "Games": "Game",
    "Graphics": "Graphics",
    "Internet": "Network",
    "Office": "Office",
    "Programming": "Development",
    "Sound & Video": "AudioVideo",
}
DEFAULT_CATEGORY = "Web"

# --- Icon search ---
MAX_ICON_CANDIDATES = 20
REQUEST_TIMEOUT = 5
# Upper bound for one downloaded page, manifest or icon
MAX_DOWNLOAD_BYTES = 4 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 64 * 1024
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) WAM/1.0"
ICON_EXTENSIONS = (".svg", ".png", ".ico", ".jpg", ".jpeg", ".gif", ".webp", ".xpm")
DEFAULT_ICON_EXTENSION = ".png"

# <link rel="..."> values that declare a page icon
ICON_LINK_RELS = ("icon", "shortcut icon", "apple-touch-icon", "apple-touch-icon-precomposed", "mask-icon", "fluid-icon")

# Second level labels that are not the "name" of a site (example.co.uk -> example)
SECOND_LEVEL_LABELS = {"co", "com", "net", "org", "gov", "edu", "ac", "or", "ne", "go"}

# --- Browsers ---
# (display name, family, binary or flatpak app id, private-mode flag)
# Order matters: it is the priority order presented to the user.
FLATPAK_PREFIX = "flatpak:"

KNOWN_BROWSERS = [
    ("Firefox", "gecko", "firefox", "--private-window"),
    ("Firefox ESR", "gecko", "firefox-esr", "--private-window"),
    ("Firefox Developer Edition", "gecko", "firefox-developer-edition", "--private-window"),
    ("Firefox (Flatpak)", "gecko", FLATPAK_PREFIX + "org.mozilla.firefox", "--private-window"),
    ("LibreWolf", "gecko", "librewolf", "--private-window"),
    ("LibreWolf (Flatpak)", "gecko", FLATPAK_PREFIX + "io.gitlab.librewolf-community", "--private-window"),
    ("Waterfox", "gecko", "waterfox", "--private-window"),
    ("Waterfox (Flatpak)", "gecko", FLATPAK_PREFIX + "net.waterfox.waterfox", "--private-window"),
    ("Chromium", "chromium", "chromium", "--incognito"),
    ("Chromium (chromium-browser)", "chromium", "chromium-browser", "--incognito"),
    ("Chromium (Flatpak)", "chromium", FLATPAK_PREFIX + "org.chromium.Chromium", "--incognito"),
    ("Ungoogled Chromium (Flatpak)", "chromium", FLATPAK_PREFIX + "io.github.ungoogled_software.ungoogled_chromium", "--incognito"),
    ("Google Chrome", "chromium", "google-chrome-stable", "--incognito"),
    ("Google Chrome (Flatpak)", "chromium", FLATPAK_PREFIX + "com.google.Chrome", "--incognito"),
    ("Brave", "chromium", "brave-browser", "--incognito"),
    ("Brave (Flatpak)", "chromium", FLATPAK_PREFIX + "com.brave.Browser", "--incognito"),
    ("Microsoft Edge", "chromium", "microsoft-edge-stable", "--inprivate"),
    ("Microsoft Edge (Flatpak)", "chromium", FLATPAK_PREFIX + "com.microsoft.Edge", "--inprivate"),
    ("Vivaldi", "chromium", "vivaldi-stable", "--incognito"),
    ("Vivaldi (Flatpak)", "chromium", FLATPAK_PREFIX + "com.vivaldi.Vivaldi", "--incognito"),
    ("Epiphany", "other", "epiphany", ""),
    ("Falkon", "other", "falkon", ""),
]
