import os
import sys
import time
import threading
import hashlib
import json
from collections import OrderedDict, defaultdict
from dataclasses import asdict

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from config import DEFAULT_DATA_PATH, load_config
from data_loader import load_catalog
from finder import DEFAULT_LIST_LIMIT, LIST_SORTS, FinderCriteria, find_courses, list_courses
from gpa_optimizer import (
    analyze_gpa_risk,
    find_gpa_boost_courses,
    optimization_to_dict,
    optimize_for_gpa,
)
from llm_explainer import advise_schedule, explain_course
from matcher import (
    DEFAULT_MIN_PREREQ_SCORE,
    DEFAULT_TOP_LIMIT,
    filter_by_career,
    rank_courses,
    score_course,
    scored_to_dict,
    top_recommendations,
)
from models import completed_baseline
from normalizer import canonical_code, normalize_code, normalize_input
from prerequisites import (
    DEFAULT_TARGET_CREDITS,
    CyclicPrerequisiteError,
    available_courses,
    build_prerequisite_tree,
    check_satisfied,
    next_major_requirements,
    prerequisite_chain,
    render_prerequisite_tree,
    suggest_next_courses,
    tree_to_dict,
)
from scheduler import analyze_schedule, calculate_gpa_impact, detect_schedule_conflicts
from timeline import estimate_semesters, generate_semesters, semesters_between
from unlocks import get_direct_unlocks
from validators import (
    InvalidInputError,
    parse_assignments,
    parse_constraints,
    parse_course_list,
    parse_credits,
    parse_gpa,
    parse_optional_float,
    parse_optional_int,
    parse_preferences,
    validate_semester_label,
)

VERSION = "1.0.0"
TARGET_DEGREE_CREDITS = 128
DASHBOARD_RECOMMENDATIONS = 5

CONFIG = load_config()

app = Flask(__name__)

# ── Paths ─────────────────────────────────────────────────────────────────────
DATA_PATH = CONFIG.data_path
_data_lock = threading.Lock()
_data_mtime = None

# -- Rate limiting (sliding window per IP, LLM endpoints only) -------------
_RATE_LIMIT_MAX = CONFIG.rate_limit_max
_RATE_LIMIT_WINDOW = CONFIG.rate_limit_window
_rate_limit_lock = threading.Lock()
_rate_limit_tracker: dict[str, list[float]] = defaultdict(list)

_SLOW_REQUEST_LOG_MS = CONFIG.slow_request_log_ms


class CourseNotFoundError(LookupError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"{code} is not in the course catalog.")


class _LruResponseCache:
    """Thread-safe bounded in-memory cache for JSON-serializable responses."""

    def __init__(self, max_size: int):
        self.max_size = max(1, int(max_size))
        self._lock = threading.Lock()
        self._items: OrderedDict[str, dict] = OrderedDict()

    def get(self, key: str):
        with self._lock:
            if key not in self._items:
                return None
            value = self._items.pop(key)
            self._items[key] = value
            return value

    def set(self, key: str, value: dict) -> None:
        with self._lock:
            if key in self._items:
                self._items.pop(key)
            self._items[key] = value
            while len(self._items) > self.max_size:
                self._items.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


_recommendation_cache = _LruResponseCache(CONFIG.request_cache_size)


def _cache_enabled() -> bool:
    return not app.config.get("TESTING", False)


def _stable_payload_hash(payload) -> str:
    normalized = payload if payload is not None else {}
    encoded = json.dumps(
        normalized,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    ).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def _request_cache_key(prefix: str, payload) -> str:
    version = "none" if _data_mtime is None else str(_data_mtime)
    return f"{prefix}:{version}:{_stable_payload_hash(payload)}"


def _check_rate_limit(ip: str) -> bool:
    """Return True if request is allowed, False if rate-limited."""
    now = time.time()
    with _rate_limit_lock:
        timestamps = _rate_limit_tracker[ip]
        _rate_limit_tracker[ip] = [t for t in timestamps if now - t < _RATE_LIMIT_WINDOW]
        if len(_rate_limit_tracker[ip]) >= _RATE_LIMIT_MAX:
            return False
        _rate_limit_tracker[ip].append(now)
        return True


def _data_file_mtime(path: str):
    try:
        if os.path.isdir(path):
            mtimes = [
                os.path.getmtime(os.path.join(path, f))
                for f in os.listdir(path)
                if f.endswith(".csv")
            ]
            return max(mtimes) if mtimes else None
        return os.path.getmtime(path)
    except OSError:
        return None


# ── Startup data load ──────────────────────────────────────────────────────────
try:
    _data = load_catalog(DATA_PATH)
    _data_mtime = _data_file_mtime(DATA_PATH)
    print(f"[OK] Loaded {len(_data['catalog_codes'])} courses from {DATA_PATH}")
except FileNotFoundError:
    # Stale DATA_PATH: fall back to the bundled catalog.
    if DATA_PATH != DEFAULT_DATA_PATH and os.path.exists(DEFAULT_DATA_PATH):
        print(
            f"[WARN] DATA_PATH not found ({DATA_PATH}); "
            f"falling back to default catalog ({DEFAULT_DATA_PATH}).",
            file=sys.stderr,
        )
        DATA_PATH = DEFAULT_DATA_PATH
        _data = load_catalog(DATA_PATH)
        _data_mtime = _data_file_mtime(DATA_PATH)
        print(f"[OK] Loaded {len(_data['catalog_codes'])} courses from {DATA_PATH}")
    else:
        print(f"[FATAL] Data file not found: {DATA_PATH}", file=sys.stderr)
        sys.exit(1)
except Exception as exc:
    print(f"[FATAL] Failed to load data: {exc}", file=sys.stderr)
    sys.exit(1)


def _reload_data_if_changed(force: bool = False) -> bool:
    """
    Hot-reload the catalog when DATA_PATH changes on disk.

    Returns True when a reload occurred, else False.
    """
    global _data, _data_mtime

    candidate_mtime = _data_file_mtime(DATA_PATH)
    if not force:
        if candidate_mtime is None:
            return False
        if _data_mtime is not None and candidate_mtime <= _data_mtime:
            return False

    with _data_lock:
        latest_mtime = _data_file_mtime(DATA_PATH)
        if not force:
            if latest_mtime is None:
                return False
            if _data_mtime is not None and latest_mtime <= _data_mtime:
                return False

        try:
            new_data = load_catalog(DATA_PATH)
        except Exception as exc:
            print(f"[WARN] Data reload failed; keeping previous dataset: {exc}", file=sys.stderr)
            return False

        _data = new_data
        _data_mtime = latest_mtime if latest_mtime is not None else candidate_mtime
        _recommendation_cache.clear()
        print(f"[OK] Reloaded {len(new_data['catalog_codes'])} courses from {DATA_PATH}")
        return True


def _refresh_data_if_needed() -> None:
    try:
        _reload_data_if_changed()
    except Exception as exc:
        print(f"[WARN] Data reload check failed: {exc}", file=sys.stderr)


# -- Security headers ------------------------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()
    _refresh_data_if_needed()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# -- Error envelope --------------------------------------------------------
def _error(error_code: str, message: str, status: int, **extra):
    payload = {"mode": "error", "error": {"error_code": error_code, "message": message}}
    payload["error"].update(extra)
    return jsonify(payload), status


@app.errorhandler(InvalidInputError)
def handle_invalid_input(e):
    return _error("INVALID_INPUT", e.message, 400, field=e.field)


@app.errorhandler(CourseNotFoundError)
def handle_course_not_found(e):
    return _error("NOT_FOUND", str(e), 404)


@app.errorhandler(CyclicPrerequisiteError)
def handle_cyclic_prerequisites(e):
    return _error("CYCLIC_PREREQUISITES", str(e), 422, cycle=e.cycle)


@app.errorhandler(HTTPException)
def handle_http_error(e):
    code = "NOT_FOUND" if e.code == 404 else "INVALID_INPUT" if e.code < 500 else "SERVER_ERROR"
    return _error(code, e.description or e.name, e.code)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    print(f"[WARN] Unhandled error on {request.path}: {e!r}", file=sys.stderr)
    return _error("SERVER_ERROR", "An unexpected server error occurred.", 500)


# -- Request helpers -------------------------------------------------------
def _json_body() -> dict:
    body = request.get_json(force=True, silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise InvalidInputError("body", "Request body must be a JSON object.")
    return body


def _lookup_course(raw, field: str = "course_code"):
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInputError(field, "is required")
    course = _data["catalog"].get(canonical_code(normalize_code(raw) or raw))
    if course is None:
        raise CourseNotFoundError(raw.strip())
    return course


def _lookup_many(raw, field: str) -> list:
    """Resolve a list of codes; unknown codes are an input error."""
    codes = parse_course_list(raw, field)
    resolved = normalize_input(codes, _data["catalog_codes"])
    unknown = resolved["invalid"] + resolved["not_in_catalog"]
    if unknown:
        raise InvalidInputError(field, f"unknown course code(s): {', '.join(unknown)}")
    return [_data["catalog"][canonical_code(c)] for c in codes]


def _completed_from(body: dict):
    prefs = parse_preferences(body)
    assignments = parse_assignments(body.get("planned_courses"))
    return prefs, assignments, completed_baseline(prefs, assignments)


def _remaining_semesters(prefs, completed_credits: int) -> list[str]:
    """Terms from the current semester to graduation, or enough to reach the degree total."""
    if not prefs.current_semester:
        return []
    if prefs.graduation_semester:
        return semesters_between(prefs.current_semester, prefs.graduation_semester)
    remaining = max(0, TARGET_DEGREE_CREDITS - completed_credits)
    return generate_semesters(prefs.current_semester, estimate_semesters(remaining))


def _client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr or "").split(",")[0].strip()


def _rate_limited():
    if app.config.get("TESTING") or _check_rate_limit(_client_ip()):
        return None
    return _error("RATE_LIMITED", "Too many requests. Please wait before submitting again.", 429)


# -- Health endpoint --------------------------------------------------------
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": VERSION,
        "courses": len(_data["catalog_codes"]),
    })


# -- Catalog browsing ------------------------------------------------------
def get_courses():
    args = request.args
    sort = (args.get("sort") or "code").strip().lower()
    if sort not in LIST_SORTS:
        raise InvalidInputError("sort", "must be one of: " + ", ".join(LIST_SORTS))
    limit = parse_optional_int(args.get("limit"), "limit", minimum=1)
    rows = list_courses(
        _data["courses"],
        level=parse_optional_int(args.get("level"), "level", minimum=0),
        search=(args.get("search") or "").strip() or None,
        sort=sort,
        limit=limit if limit is not None else DEFAULT_LIST_LIMIT,
    )
    return jsonify({"courses": [c.summary() for c in rows], "count": len(rows)})


def get_course_detail(code):
    course = _lookup_course(code, "code")
    tree = build_prerequisite_tree(course, _data["catalog"])
    return jsonify({
        "course": course.to_dict(),
        "prerequisite_tree": tree_to_dict(tree),
        "prerequisite_tree_text": render_prerequisite_tree(tree),
        "unlocks": get_direct_unlocks(course.code, _data["reverse_map"]),
    })


def finder_endpoint():
    criteria = FinderCriteria.from_query(request.args)
    matches = find_courses(_data["courses"], criteria)
    filters = asdict(criteria)
    filters["career_tags"] = list(criteria.career_tags)
    return jsonify({
        "courses": [c.to_dict() for c in matches],
        "count": len(matches),
        "filters": filters,
    })


# -- Recommendations -------------------------------------------------------
def recommendations_endpoint():
    body = _json_body()

    cache_key = _request_cache_key("recommendations", body)
    if _cache_enabled():
        cached = _recommendation_cache.get(cache_key)
        if cached is not None:
            return jsonify(cached)

    prefs, _, completed = _completed_from(body)
    limit = parse_optional_int(body.get("limit"), "limit", minimum=1)
    min_prereq = parse_optional_float(
        body.get("min_prereq_score"), "min_prereq_score", minimum=0, maximum=100,
    )

    ranked = rank_courses(_data["courses"], prefs, completed)
    career_path = str(body.get("career_path") or "").strip()
    if career_path:
        ranked = filter_by_career(ranked, career_path)
    top = top_recommendations(
        ranked,
        limit=limit if limit is not None else DEFAULT_TOP_LIMIT,
        min_prereq_score=min_prereq if min_prereq is not None else DEFAULT_MIN_PREREQ_SCORE,
    )

    response_payload = {
        "recommendations": [scored_to_dict(s) for s in top],
        "count": len(top),
        "total_ranked": len(ranked),
    }
    if _cache_enabled():
        _recommendation_cache.set(cache_key, response_payload)
    return jsonify(response_payload)


def dashboard_endpoint():
    body = _json_body()
    prefs, assignments, completed = _completed_from(body)
    planned_codes = [a.course_code for a in assignments if a.status != "completed"]

    catalog = _data["catalog"]
    completed_credits = sum(
        catalog[canonical_code(c)].credits for c in completed if canonical_code(c) in catalog
    )

    ranked = rank_courses(_data["courses"], prefs, completed + planned_codes)
    top = top_recommendations(ranked, limit=DASHBOARD_RECOMMENDATIONS)
    has_preferences = bool(
        prefs.career_goals or prefs.interests or prefs.target_gpa
        or prefs.preferred_difficulty or prefs.max_workload_hours
    )

    return jsonify({
        "has_preferences": has_preferences,
        "planned_courses_count": len(assignments),
        "completed_credits": completed_credits,
        "target_credits": TARGET_DEGREE_CREDITS,
        "recommendations": [scored_to_dict(s) for s in top],
        "next_in_major": next_major_requirements(_data["courses"], completed, planned_codes),
        "semesters": _remaining_semesters(prefs, completed_credits),
    })


# -- Prerequisites ---------------------------------------------------------
def prerequisite_check_endpoint():
    body = _json_body()
    course = _lookup_course(body.get("course_code"))
    _, _, completed = _completed_from(body)
    result = check_satisfied(course, completed)
    return jsonify({"course_code": course.code, **result})


def prerequisite_chain_endpoint():
    body = _json_body()
    target = _lookup_course(body.get("target_course"), "target_course")
    _, _, completed = _completed_from(body)
    return jsonify(prerequisite_chain(target, _data["catalog"], completed))


def next_courses_endpoint():
    body = _json_body()
    _, _, completed = _completed_from(body)
    target = parse_credits(body.get("target_credits"), "target_credits")
    selected = suggest_next_courses(
        _data["courses"],
        completed,
        target_credits=target if target is not None else DEFAULT_TARGET_CREDITS,
    )
    return jsonify({
        "courses": [c.summary() for c in selected],
        "total_credits": sum(c.credits for c in selected),
    })


# -- Planner ---------------------------------------------------------------
def planner_analyze_endpoint():
    body = _json_body()
    _, assignments, completed = _completed_from(body)
    return jsonify(analyze_schedule(assignments, _data["catalog"], completed))


def planner_gpa_impact_endpoint():
    body = _json_body()
    current_gpa = parse_gpa(body.get("current_gpa"), "current_gpa")
    current_credits = parse_credits(body.get("current_credits"), "current_credits")
    planned = _lookup_many(body.get("course_codes"), "course_codes")
    return jsonify(calculate_gpa_impact(current_gpa or 0.0, current_credits or 0, planned))


def planner_conflicts_endpoint():
    body = _json_body()
    course_a = _lookup_course(body.get("course_a"), "course_a")
    course_b = _lookup_course(body.get("course_b"), "course_b")
    return jsonify({"conflicts": detect_schedule_conflicts(course_a, course_b)})


# -- GPA -------------------------------------------------------------------
def optimize_endpoint():
    body = _json_body()
    constraints = parse_constraints(body)
    _, _, completed = _completed_from(body)
    candidates = available_courses(_data["courses"], completed)
    return jsonify(optimization_to_dict(optimize_for_gpa(candidates, constraints)))


def gpa_boost_endpoint():
    body = _json_body()
    current_gpa = parse_gpa(body.get("current_gpa"), "current_gpa", required=True)
    target_gpa = parse_gpa(body.get("target_gpa"), "target_gpa", required=True)
    current_credits = parse_credits(body.get("current_credits"), "current_credits") or 0
    max_courses = parse_optional_int(body.get("max_courses"), "max_courses", minimum=1)
    _, _, completed = _completed_from(body)
    candidates = available_courses(_data["courses"], completed)
    boost = find_gpa_boost_courses(
        candidates,
        current_gpa,
        current_credits,
        target_gpa,
        max_courses=max_courses if max_courses is not None else 5,
    )
    return jsonify({"courses": [c.summary() for c in boost]})


def gpa_risk_endpoint():
    body = _json_body()
    courses = _lookup_many(body.get("course_codes"), "course_codes")
    return jsonify(analyze_gpa_risk(courses))


# -- LLM explanations ------------------------------------------------------
def explain_endpoint():
    limited = _rate_limited()
    if limited:
        return limited
    body = _json_body()
    course = _lookup_course(body.get("course_code"))

    prefs = scored = None
    if isinstance(body.get("preferences"), dict):
        prefs, _, completed = _completed_from(body)
        scored = score_course(course, prefs, completed)

    try:
        explanation = explain_course(CONFIG, course, prefs, scored)
    except Exception as exc:
        print(f"[WARN] Explanation failed for {course.code}: {exc}", file=sys.stderr)
        return _error("EXPLANATION_UNAVAILABLE", "Unable to generate explanation at this time.", 503)
    return jsonify({"course_code": course.code, "explanation": explanation})


def planner_advice_endpoint():
    limited = _rate_limited()
    if limited:
        return limited
    body = _json_body()
    semester = validate_semester_label(body.get("semester"))
    courses = _lookup_many(body.get("course_codes"), "course_codes")
    if not courses:
        raise InvalidInputError("course_codes", "must list at least one course")

    try:
        advice = advise_schedule(CONFIG, courses, semester)
    except Exception as exc:
        print(f"[WARN] Schedule advice failed for {semester}: {exc}", file=sys.stderr)
        return _error("EXPLANATION_UNAVAILABLE", "Unable to generate advice at this time.", 503)
    return jsonify({"semester": semester, "advice": advice})


# -- API routes -------------------------------------------------------------
app.add_url_rule("/api/health", endpoint="api_health", view_func=health_endpoint, methods=["GET"])
app.add_url_rule("/api/courses", endpoint="api_courses", view_func=get_courses, methods=["GET"])
app.add_url_rule("/api/courses/<path:code>", endpoint="api_course_detail", view_func=get_course_detail, methods=["GET"])
app.add_url_rule("/api/finder", endpoint="api_finder", view_func=finder_endpoint, methods=["GET"])
app.add_url_rule("/api/recommendations", endpoint="api_recommendations", view_func=recommendations_endpoint, methods=["POST"])
app.add_url_rule("/api/dashboard", endpoint="api_dashboard", view_func=dashboard_endpoint, methods=["POST"])
app.add_url_rule("/api/prerequisites/check", endpoint="api_prereq_check", view_func=prerequisite_check_endpoint, methods=["POST"])
app.add_url_rule("/api/prerequisites/chain", endpoint="api_prereq_chain", view_func=prerequisite_chain_endpoint, methods=["POST"])
app.add_url_rule("/api/next-courses", endpoint="api_next_courses", view_func=next_courses_endpoint, methods=["POST"])
app.add_url_rule("/api/planner/analyze", endpoint="api_planner_analyze", view_func=planner_analyze_endpoint, methods=["POST"])
app.add_url_rule("/api/planner/gpa-impact", endpoint="api_planner_gpa_impact", view_func=planner_gpa_impact_endpoint, methods=["POST"])
app.add_url_rule("/api/planner/conflicts", endpoint="api_planner_conflicts", view_func=planner_conflicts_endpoint, methods=["POST"])
app.add_url_rule("/api/optimize", endpoint="api_optimize", view_func=optimize_endpoint, methods=["POST"])
app.add_url_rule("/api/gpa/boost", endpoint="api_gpa_boost", view_func=gpa_boost_endpoint, methods=["POST"])
app.add_url_rule("/api/gpa/risk", endpoint="api_gpa_risk", view_func=gpa_risk_endpoint, methods=["POST"])
app.add_url_rule("/api/explain", endpoint="api_explain", view_func=explain_endpoint, methods=["POST"])
app.add_url_rule("/api/planner/advice", endpoint="api_planner_advice", view_func=planner_advice_endpoint, methods=["POST"])


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
