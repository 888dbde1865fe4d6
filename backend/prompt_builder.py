from models import Course, UserPreferences, average_difficulty, total_credits

SYSTEM_PROMPT = """You are an academic advisor for Purdue ECE students. Provide concise, helpful explanations about courses.
Be specific about why a course might be good for certain career paths or interests.
Keep responses under 200 words and focus on practical value.
All scores and prerequisite checks below were computed by the planner. Do not recompute or contradict them."""

ADVICE_SYSTEM_PROMPT = "You are an academic advisor helping Purdue ECE students plan their semesters."


def _fmt(value, spec: str, fallback: str = "N/A") -> str:
    if value is None:
        return fallback
    return format(value, spec)


def _course_details(course: Course) -> list[str]:
    return [
        "Course details:",
        f"- Credits: {course.credits}",
        f"- Average GPA: {_fmt(course.avg_gpa, '.2f')}",
        f"- Difficulty: {_fmt(course.difficulty_rating, '.1f')}/5",
        f"- Workload: {_fmt(course.workload_hours, 'g')} hours/week",
        f"- Description: {course.description or 'N/A'}",
    ]


def build_course_explanation_prompt(
    course: Course,
    preferences: UserPreferences | None = None,
    scored: dict | None = None,
) -> str:
    """
    User message for a single-course explanation.

    With preferences the prompt asks for a personalized "why this fits you";
    without, a general overview. `scored` is a rank_courses entry (or a
    score_course result) whose factor scores are passed along as facts.
    """
    lines = []
    if preferences is not None:
        goals = ", ".join(preferences.career_goals) or "not specified"
        lines.append(
            f"Explain why {course.code} ({course.name}) would be a good choice "
            f"for a student interested in {goals}."
        )
        lines.append("")
        lines.extend(_course_details(course))
        lines.append("")
        lines.append(f"Student interests: {', '.join(preferences.interests) or 'not specified'}")
        lines.append(f"Target GPA: {_fmt(preferences.target_gpa, 'g', 'Not specified')}")
    else:
        lines.append(f"Provide a brief overview of {course.code} ({course.name}) for Purdue ECE students.")
        lines.append("")
        lines.extend(_course_details(course))

    if scored:
        overall = scored.get("score", scored.get("overall"))
        lines.append("")
        lines.append(f"Planner match score: {overall}/100")
        for name, value in scored.get("factors", {}).items():
            lines.append(f"- {name.replace('_', ' ')}: {round(value)}")

    lines.append("")
    if preferences is not None:
        lines.append("Provide a personalized explanation of why this course fits their goals.")
    else:
        lines.append("Include: what students learn, career relevance, and tips for success.")
    return "\n".join(lines)


def build_schedule_advice_prompt(courses: list[Course], semester: str) -> str:
    course_lines = [
        f"- {c.code}: {c.name} ({c.credits} credits, difficulty "
        f"{_fmt(c.difficulty_rating, 'g', 'unknown')}/5)"
        for c in courses
    ]
    return "\n".join([
        f"A Purdue ECE student is planning to take these courses in {semester}:",
        *course_lines,
        "",
        f"Total credits: {total_credits(courses)}",
        f"Average difficulty: {average_difficulty(courses):.1f}/5",
        "",
        "Provide brief advice (under 150 words) about this course load. "
        "Consider workload balance, prerequisite chains, and time management.",
    ])
