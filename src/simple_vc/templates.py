"""File templates written by `svc init`."""

from .constants import DEFAULT_IGNORE_RULES


def create_svcignore() -> str:
    """Generate .svcignore content.

    Returns:
        Content for .svcignore file
    """
    header = (
        "# Ignore rules for svc\n"
        "# One glob or regular expression per line, matched against the\n"
        "# whole project-relative path. Lines starting with # or // are comments.\n"
        "# A line containing *, ? or [ is read as a glob; write a regular\n"
        "# expression as ^...$ (e.g. ^.*\\.log$) to keep it a regex.\n"
        "\n"
    )
    return header + "".join(f"{rule}\n" for rule in DEFAULT_IGNORE_RULES)
