"""Command-line tools for ossky.

- ``python -m ossky.cli run``     start the bot (default)
- ``python -m ossky.cli sweep``   one cache cleanup cycle
- ``python -m ossky.cli preview`` print the record for a hand-written post
"""
