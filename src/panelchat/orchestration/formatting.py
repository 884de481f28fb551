"""
Transcript formatting -- turns a pass's agent contributions into the
markdown the user sees.

    ### Business Analyst
    <text>

    ### Sr Developer
    <text>

    ---
    *Reply with **approve** to proceed to the next phase, or provide feedback for revisions.*
"""

HASH_SUFFIX_LENGTH = 32

COMPLETE_FOOTER = "**Task Complete!** All work has been reviewed and approved."
AWAITING_FOOTER = (
    "*Reply with **approve** to proceed to the next phase, "
    "or provide feedback for revisions.*"
)


def clean_agent_name(agent_id: str) -> str:
    """
    Display name for an agent identifier.

    "sr-developer" -> "Sr Developer"
    "business_analyst_<32 hex chars>" -> "Business Analyst"
    """
    name = agent_id
    if len(name) > HASH_SUFFIX_LENGTH:
        last_underscore = name.rfind("_")
        if last_underscore > 0 and len(name) - last_underscore - 1 == HASH_SUFFIX_LENGTH:
            name = name[:last_underscore]

    words = [w for w in name.replace("-", "_").split("_") if w]
    return " ".join(w[0].upper() + w[1:].lower() for w in words)


def format_transcript(pairs: list[tuple[str, str]], complete: bool) -> str:
    lines: list[str] = []
    for agent_name, text in pairs:
        lines.append(f"### {clean_agent_name(agent_name)}")
        lines.append(text)
        lines.append("")

    lines.append("---")
    lines.append(COMPLETE_FOOTER if complete else AWAITING_FOOTER)
    return "\n".join(lines) + "\n"
