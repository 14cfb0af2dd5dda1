"""Canned-response study coach: keyword intent lookup, no state."""

from enum import StrEnum

from pydantic import BaseModel


class Intent(StrEnum):
    STUDY_HABITS = "study_habits"
    SCHEDULE = "schedule"
    MEMORIZE = "memorize"
    MOTIVATION = "motivation"
    FOCUS = "focus"
    GENERAL = "general"


class ReplyCategory(StrEnum):
    TIP = "tip"
    SUGGESTION = "suggestion"
    MOTIVATION = "motivation"
    REMINDER = "reminder"


class CoachReply(BaseModel):
    intent: Intent
    category: ReplyCategory
    content: str


GREETING = (
    "Hello! I'm your AI Study Coach. I'm here to help you optimize your learning "
    "journey. What would you like to work on today?"
)

SUGGESTIONS = [
    "How can I improve my study habits?",
    "Create a study schedule for me",
    "What's the best way to memorize formulas?",
    "Help me stay motivated",
    "Tips for better focus",
]

# Checked in order; first intent with a matching keyword wins.
KEYWORDS: list[tuple[Intent, tuple[str, ...]]] = [
    (Intent.STUDY_HABITS, ("habit",)),
    (Intent.SCHEDULE, ("schedule", "plan")),
    (Intent.MEMORIZE, ("memorize", "remember")),
    (Intent.MOTIVATION, ("motivat", "inspire")),
    (Intent.FOCUS, ("focus", "concentrat")),
]

RESPONSES: dict[Intent, tuple[ReplyCategory, str]] = {
    Intent.STUDY_HABITS: (
        ReplyCategory.TIP,
        "Here are some proven study habits that can transform your learning:\n\n"
        "🎯 **Active Recall**: Test yourself regularly instead of just re-reading\n"
        "📝 **Spaced Repetition**: Review material at increasing intervals\n"
        "⏰ **Pomodoro Technique**: Study in 25-minute focused blocks\n"
        "🧠 **Teach Others**: Explain concepts to reinforce your understanding\n"
        "💤 **Quality Sleep**: Get 7-9 hours for memory consolidation",
    ),
    Intent.SCHEDULE: (
        ReplyCategory.SUGGESTION,
        "Let me help you create an effective study schedule:\n\n"
        "📅 **Morning (9-11 AM)**: Your brain is freshest - tackle difficult subjects\n"
        "🍽️ **After Lunch (2-4 PM)**: Review and practice problems\n"
        "🌅 **Evening (7-9 PM)**: Light review and reading\n\n"
        "✅ Include 15-minute breaks every hour\n"
        "✅ Reserve weekends for review and catch-up\n"
        "✅ Plan specific goals for each session",
    ),
    Intent.MEMORIZE: (
        ReplyCategory.TIP,
        "Effective memorization techniques:\n\n"
        "🧩 **Chunking**: Break information into smaller, manageable pieces\n"
        "🎨 **Visual Memory**: Create mind maps and diagrams\n"
        "📖 **Storytelling**: Create narratives linking facts together\n"
        "🔄 **Multiple Senses**: Read aloud, write, and visualize\n"
        "🏃 **Movement**: Walk while reviewing to boost retention",
    ),
    Intent.MOTIVATION: (
        ReplyCategory.MOTIVATION,
        "Here's how to stay motivated on your learning journey:\n\n"
        "🎯 Set specific, achievable daily goals\n"
        "🏆 Celebrate small wins and progress\n"
        "👥 Join study groups or find accountability partners\n"
        "📈 Track your progress visually\n"
        "🌟 Remember your 'why' - your long-term goals\n"
        "💪 Take breaks to prevent burnout",
    ),
    Intent.FOCUS: (
        ReplyCategory.TIP,
        "Boost your focus with these strategies:\n\n"
        "📱 Put devices in airplane mode while studying\n"
        "🎵 Try instrumental music or white noise\n"
        "🪑 Create a dedicated study space\n"
        "🍃 Ensure good lighting and ventilation\n"
        "💧 Stay hydrated and take movement breaks\n"
        "🧘 Practice mindfulness before study sessions",
    ),
    Intent.GENERAL: (
        ReplyCategory.SUGGESTION,
        "I understand you're looking for study guidance. Here are some ways I can help:\n\n"
        "📚 Study techniques and strategies\n"
        "⏰ Creating effective schedules\n"
        "🧠 Memory and retention tips\n"
        "💪 Motivation and goal setting\n"
        "🎯 Focus and concentration methods\n\n"
        "What specific area would you like to explore?",
    ),
}


def classify_intent(text: str) -> Intent:
    """Map free text to an intent by case-insensitive substring match."""
    text_lower = text.lower()
    for intent, keywords in KEYWORDS:
        if any(word in text_lower for word in keywords):
            return intent
    return Intent.GENERAL


def respond(intent: Intent) -> CoachReply:
    category, content = RESPONSES[intent]
    return CoachReply(intent=intent, category=category, content=content)


def greeting() -> CoachReply:
    return CoachReply(
        intent=Intent.GENERAL, category=ReplyCategory.MOTIVATION, content=GREETING
    )
