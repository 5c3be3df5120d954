import calendar
from datetime import datetime, timedelta

from app.chatbot.completion import CompletionClient
from app.chatbot.history import ChatHistory, REPORT_MESSAGE_LIMIT
from app.errors import NoDataFound, NotAuthenticated, ValidationError
from app.utils.security import ANONYMOUS, resolve_user_id

REPORT_TYPES = ("daily", "weekly", "monthly", "average")
REPORT_TEMPERATURE = 0.5
TRANSCRIPT_LIMIT = 30000
TRUNCATION_MARKER = "\n... (truncated for length)"
NO_REPORT = "Could not generate report."

REPORT_PROMPT = """You are an expert psychological and behavioral analyst evaluating interactions of a neurodiverse individual (who may have Autism, ADHD, or Dyslexia) with a support chatbot.
Based on the transcript provided, generate a detailed progress report. The report must be structured with the following bullet points and sections:

## Comprehensive Report ({report_type})
1. Emotional State & Mood Variations
2. Interests, Hobbies & Engaging Subjects
3. Strengths Identified (cognitive, social, or emotional)
4. Potential Recommendations or Career/Path Suggestions

Use a professional, incredibly positive, validating, and empathetic tone. Never diagnose. Provide a comprehensive analysis based ONLY on the transcript provided below.

TRANSCRIPT:
{transcript}"""


def local_now():
    # naive wall clock; the zone offset is resolved per date in window_start
    return datetime.now()


def _shift_months(moment, months):
    index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(report_type, now):
    """
    Start of the reporting window ending at `now`.

    The arithmetic runs on wall-clock time, so a window that crosses a
    daylight saving change still starts at the same local time of day. A
    naive `now` is taken as system local time; an aware one keeps its tzinfo,
    which a ZoneInfo zone resolves for the start date.
    """
    wall = now.replace(tzinfo=None)
    if report_type == "daily":
        start = wall.replace(hour=0, minute=0, second=0, microsecond=0)
    elif report_type == "weekly":
        start = wall - timedelta(days=7)
    elif report_type == "monthly":
        start = _shift_months(wall, 1)
    elif report_type == "average":
        start = _shift_months(wall, 12)
    else:
        raise ValidationError("Invalid report type")
    if now.tzinfo is None:
        return start.astimezone()
    return start.replace(tzinfo=now.tzinfo)


def build_transcript(messages, limit=TRANSCRIPT_LIMIT):
    transcript = "\n".join(
        f"[{m.timestamp.astimezone().strftime('%Y-%m-%d %H:%M:%S')}] {m.sender}: {m.text}"
        for m in messages
    )
    if len(transcript) > limit:
        transcript = transcript[:limit] + TRUNCATION_MARKER
    return transcript


class ReportService:
    def __init__(self, completion: CompletionClient, history: ChatHistory, clock=local_now):
        self.completion = completion
        self.history = history
        self.clock = clock

    async def generate(self, report_type, credential=None):
        if report_type not in REPORT_TYPES:
            raise ValidationError("Invalid report type")

        user_id = resolve_user_id(credential)
        if user_id == ANONYMOUS:
            # every anonymous caller shares one history
            raise NotAuthenticated("Sign in to generate a report.")

        start = window_start(report_type, self.clock())
        messages = await self.history.find_since(user_id, start, limit=REPORT_MESSAGE_LIMIT)
        if not messages:
            raise NoDataFound("No interactions found for this period to generate a report.")

        prompt = REPORT_PROMPT.format(report_type=report_type.upper(), transcript=build_transcript(messages))
        return await self.completion.complete(
            [{"role": "user", "content": prompt}],
            temperature=REPORT_TEMPERATURE,
            default=NO_REPORT,
        )
