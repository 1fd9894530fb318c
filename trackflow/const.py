import os


EARTH_RADIUS_KM = 6371.0

# FIT positions are stored as semicircles (2^31 semicircles == 180 degrees)
SEMICIRCLES_TO_DEGREES = 180.0 / 2**31

KM_TO_MILES = 0.621371
METERS_TO_FEET = 3.28084
MIN_PER_KM_TO_MIN_PER_MILE = 1.60934

DEFAULT_ACTIVITY_TYPE = 'Unknown'
UNKNOWN_SPORT = 'unknown'

GPX_NAMESPACE = 'http://www.topografix.com/GPX/1/1'

# Hard caps applied to untrusted payloads
MAX_DECOMPRESSED_BYTES = int(os.getenv('TRACKFLOW_MAX_DECOMPRESSED_BYTES', str(256 * 1024 * 1024)))

FIT_SPORT_CODES = {
    0                                   : 'generic',
    1                                   : 'running',
    2                                   : 'cycling',
    3                                   : 'transition',
    4                                   : 'fitness_equipment',
    5                                   : 'swimming',
    6                                   : 'basketball',
    7                                   : 'soccer',
    8                                   : 'tennis',
    9                                   : 'american_football',
    10                                  : 'training',
    11                                  : 'walking',
    12                                  : 'cross_country_skiing',
    13                                  : 'alpine_skiing',
    14                                  : 'snowboarding',
    15                                  : 'rowing',
    16                                  : 'mountaineering',
    17                                  : 'hiking',
    18                                  : 'multisport',
    19                                  : 'paddling',
    20                                  : 'flying',
    21                                  : 'e_biking',
    22                                  : 'motorcycling',
    23                                  : 'boating',
    24                                  : 'driving',
    25                                  : 'golf',
    26                                  : 'hang_gliding',
    27                                  : 'horseback_riding',
    28                                  : 'hunting',
    29                                  : 'fishing',
    30                                  : 'inline_skating',
    31                                  : 'rock_climbing',
    32                                  : 'sailing',
    33                                  : 'ice_skating',
    34                                  : 'sky_diving',
    35                                  : 'snowshoeing',
    36                                  : 'snowmobiling',
    37                                  : 'stand_up_paddleboarding',
    38                                  : 'surfing',
    39                                  : 'wakeboarding',
    40                                  : 'water_skiing',
    41                                  : 'kayaking',
    42                                  : 'rafting',
    43                                  : 'windsurfing',
    44                                  : 'kitesurfing',
    45                                  : 'tactical',
    46                                  : 'jumpmaster',
    47                                  : 'boxing',
    48                                  : 'floor_climbing',
    53                                  : 'all',
}
