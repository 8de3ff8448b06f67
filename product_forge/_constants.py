"""Common literal values used across product_forge.

These constants keep filenames, group keys and phrase titles centralized so
processors, the porter and tests can import the same values without
drifting. Intended for internal use within the product_forge package.

Examples
--------
>>> from product_forge import _constants
>>> _constants.PRODUCT_XML_TEMPLATE.format(id="demo")
'product-demo.xml'
>>> _constants.CHECKSUM_FILE_TEMPLATE.format(id="demo")
'md5_sums_demo.yaml'
"""

PRODUCT_XML_TEMPLATE = "product-{id}.xml"
CHECKSUM_FILE_TEMPLATE = "md5_sums_{id}.yaml"
EXTENDED_CHECKSUM_FILE_TEMPLATE = "md5_sums_{id}.extended.yaml"
BUILD_META_TEMPLATE = ".forge-{id}-meta.json"

UPLOAD_DIRNAME = "upload"
INCLUDES_DIRNAME = "includes"

DEFAULT_ENCODING = "ISO-8859-1"

SETTINGS_PHRASE_GROUP = "vbsettings"
SETTINGS_PHRASE_TITLE = "vBulletin Settings"
TASK_PHRASE_GROUP = "cron"
TASK_PHRASE_TITLE = "Scheduled Tasks"
NAVIGATION_PHRASE_GROUP = "global"
NAVIGATION_PHRASE_TITLE = "GLOBAL"

BINARY_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif"})
VCS_MARKERS = frozenset({".svn", ".git"})
