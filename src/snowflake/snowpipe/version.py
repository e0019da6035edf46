# Update this for the versions
# Don't change the forth version number from None
VERSION = (0, 1, 0, None)
