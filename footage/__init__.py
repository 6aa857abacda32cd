"""Folder-oriented footage rendering: group, crop, trim and render camera clips.

Modules:
- discovery: clip naming conventions and grouping into per-shoot folders
- group_config: `<group>.cfg` settings and the interactive edit step
- crop / filters / profiles: geometry, filter graph and encoder selection
- concat: fast-path concat plans with trims spread across clips
- pipeline: combine -> preview -> final stage selection per group
- scheduler: sequential or per-process group execution
"""
