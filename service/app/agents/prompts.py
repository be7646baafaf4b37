DEFAULT_BOT_PERSONALITY = "You are a helpful assistant."

DEFAULT_CHAT_SYSTEM_PROMPT = """You are a smart AI assistant helping a developer manage Telegram bots and small code projects.
Answer helpfully and to the point."""


# Replies sent to Telegram users when a message can't be answered
BOT_FALLBACK_REPLY = "I'm sorry, I couldn't generate a response."
BOT_APOLOGY_REPLY = "Sorry, I encountered an error processing your message."


# =============================================================================
# AI FILE TOOLS
# =============================================================================

FILE_GENERATION_SYSTEM_PROMPT = "You are an experienced developer writing high-quality code. Reply with code only, no explanations."

FILE_GENERATION_PROMPT = """Create the file {file_name} in {language}.

Description: {description}
{requirements}
Return only the code without any additional explanation. The code must be ready to use and follow best practices."""


FILE_EDIT_SYSTEM_PROMPT = "You are an experienced developer editing code. Reply with code only, no explanations."

FILE_EDIT_PROMPT = """Edit the following code according to the instructions.

Current code:
```{language}
{file_content}
```

Edit instructions: {edit_instructions}

Return only the updated code without any additional explanation."""


CODE_ANALYSIS_SYSTEM_PROMPT = "You are an experienced code reviewer analysing code quality."

CODE_ANALYSIS_PROMPT = """Analyse the following {language} code and give recommendations for improvement:

```{language}
{code}
```

Structure the analysis as:
- Code quality
- Possible problems
- Recommendations for improvement
- Adherence to best practices"""
