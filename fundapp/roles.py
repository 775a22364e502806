# fundapp/roles.py

# -----------------------------------------
# Coordinator hierarchy configuration
# -----------------------------------------

# Ordered top -> bottom. rank 0 is the top administrative role.
ROLES = [
    # role,                   label,                   level,            rank
    ("ADMIN",                 "Administrator",         "national",       0),
    ("CENTRAL_PRESIDENT",     "Central President",     "national",       1),
    ("STATE_PRESIDENT",       "State President",       "state",          2),
    ("STATE_COORDINATOR",     "State Coordinator",     "state_coord",    3),
    ("ZONE_COORDINATOR",      "Zone Coordinator",      "zone",           4),
    ("DISTRICT_PRESIDENT",    "District President",    "district_pres",  5),
    ("DISTRICT_COORDINATOR",  "District Coordinator",  "district_coord", 6),
    ("BLOCK_COORDINATOR",     "Block Coordinator",     "block",          7),
    ("NODAL_OFFICER",         "Nodal Officer",         "nodal",          8),
    ("PRERAK",                "Prerak",                "prerak",         9),
    ("PRERNA_SAKHI",          "Prerna Sakhi",          "prerna",         10),
    ("VOLUNTEER",             "Volunteer",             "volunteer",      11),
]

ROLE_CHOICES = [(role, label) for role, label, _level, _rank in ROLES]

# Unique levels in hierarchy order ("national" appears for two roles)
LEVEL_CHOICES = list(dict.fromkeys(
    (level, level.replace("_", " ").title()) for _role, _label, level, _rank in ROLES
))

ROLE_LEVEL = {role: level for role, _label, level, _rank in ROLES}
ROLE_RANK = {role: rank for role, _label, _level, rank in ROLES}

# Region attributes a target or coordinator may carry, widest first
REGION_FIELDS = ("state", "zone", "district", "block")


def level_for_role(role):
    """
    Hierarchy level label stored on targets.
    Unknown roles fall back to the volunteer level.
    """
    return ROLE_LEVEL.get(role, "volunteer")


def role_rank(role):
    return ROLE_RANK.get(role, ROLE_RANK["VOLUNTEER"])
