"""LLM prompts: single source of truth for content analysis."""

ANALYSIS_SYSTEM_PROMPT = (
    "You help people act on the posts they save. You read one saved post and reply "
    "with a single JSON object and nothing else."
)

ANALYSIS_USER_PROMPT = """Analyze this saved content and provide:
1. A 1-2 sentence summary that captures the main point
2. Content type (tweet, article, tutorial, inspiration, news, habit, etc.)
3. 2-3 relevant topic tags (lowercase, no spaces)
4. 3-5 suggested actions the user might want to take

Content: "{content}"
{url_line}
Respond in JSON format:
{{
  "summary": "Brief summary here",
  "contentType": "tweet",
  "topics": ["topic1", "topic2"],
  "suggestedActions": [
    "Add to task list",
    "Save for inspiration",
    "Set reminder to practice",
    "Research more about this topic",
    "Share with team"
  ]
}}

Keep suggestions specific and actionable. For tutorials, suggest "Add to task list" or "Set reminder to practice". For inspiration, suggest "Save for inspiration" or "Create similar content". For habits, suggest "Set daily reminder" or "Create routine"."""

ACTIONS_USER_PROMPT = """Given this {content_type} content, suggest 3-5 specific actions a user might want to take:

Content: "{content}"

Focus on actionable suggestions like:
- For tutorials: "Add to task list", "Set reminder to practice", "Schedule learning time"
- For inspiration: "Save for inspiration", "Create similar content", "Share with team"
- For habits/routines: "Set daily reminder", "Create weekly routine", "Track progress"
- For articles: "Summarize key points", "Research more", "Apply to current project"
- For tools/products: "Try this tool", "Compare alternatives", "Add to toolkit"

Respond with a JSON array of action strings:
["action1", "action2", "action3"]"""

FALLBACK_ACTIONS_BY_TYPE: dict[str, list[str]] = {
    "tutorial": ["Add to task list", "Set reminder to practice", "Schedule learning time"],
    "article": ["Summarize key points", "Research more", "Apply to project"],
    "inspiration": ["Save for inspiration", "Create similar content", "Share ideas"],
    "habit": ["Set daily reminder", "Create routine", "Track progress"],
    "default": ["Mark as done", "Save for later", "Share with others"],
}


def build_analysis_prompt(content: str, url: str | None = None) -> str:
    return ANALYSIS_USER_PROMPT.format(content=content, url_line=f"URL: {url}\n" if url else "")


def build_actions_prompt(content: str, content_type: str) -> str:
    return ACTIONS_USER_PROMPT.format(content=content, content_type=content_type)
