BASE_SYSTEM_PROMPT = """You are Burrow, an assistant that works inside the user's workspace.
Answer the user's request accurately and concisely.
If you need to perform actions, use the provided tools."""

CONTEXT_FILE_TEMPLATE = "\n--- {name} ---\n{content}\n"

SUMMARY_PREFIX = "Previous conversation summary: "

SKILL_TEMPLATE = "Skill: {name}\n{content}"

OMITTED_TEMPLATE = "[{count} older messages omitted, see summary above for context]"

SUMMARIZE_SYSTEM_PROMPT = "You are a helpful assistant. Summarize the conversation history concisely."

SUMMARIZE_USER_TEMPLATE = "Summarize the following conversation into a concise paragraph:\n\n{transcript}"


def render_transcript(messages) -> str:
    return "\n".join(f"{m.role.value}: {m.content}" for m in messages)
