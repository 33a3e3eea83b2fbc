"""
Skills Blueprint

Skill catalog and execution endpoints:
- GET /skills - List skills (filter by category, search, limit)
- GET /skills/categories - Categories with skill counts
- GET /skill/<id> - Skill detail
- GET /skill/<id>/reference/<ref> - Reference document content
- POST /skill/<id>/execute - Run a skill against input text
"""

import logging

from flask import Blueprint, jsonify, request

from ai_agent.llm import ProviderError, ProviderNotFoundError
from ai_agent.skills import (
    InvalidInputError,
    SkillNotFoundError,
    get_skill_execution_service,
    get_skill_store,
)

logger = logging.getLogger(__name__)

skills_bp = Blueprint("skills", __name__)

DEFAULT_SEARCH_LIMIT = 10


def _store_unavailable():
    return jsonify({"error": "Skill catalog not available"}), 503


def _parse_limit():
    """Parse the optional limit query arg. Returns None when absent."""
    raw = request.args.get("limit")
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError("limit must be an integer") from exc


def _group(summaries, category_order):
    grouped = {}
    for name in category_order:
        members = [s for s in summaries if s["category"] == name]
        if members:
            grouped[name] = members
    return grouped


@skills_bp.route("/skills", methods=["GET"])
def list_skills():
    """
    List skills.

    Query params:
        - category: Only skills in this category
        - search: Rank by relevance to this query
        - limit: Maximum number of skills

    Response:
        - skills: Skill summaries (with relevanceScore when searching)
        - grouped: The same skills grouped by category
        - totalCount: Number of skills returned
    """
    store = get_skill_store()
    if store is None:
        return _store_unavailable()

    try:
        limit = _parse_limit()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    category = request.args.get("category")
    search = (request.args.get("search") or "").strip()

    if search:
        results = store.search(search, limit=len(store.all()))
        if category:
            results = [r for r in results if r.skill.category == category]
        skills = [r.to_dict() for r in results]
        if limit is None:
            limit = DEFAULT_SEARCH_LIMIT
    else:
        skills = [
            skill.to_summary()
            for skill in store.all()
            if not category or skill.category == category
        ]

    if limit is not None:
        skills = skills[: max(limit, 0)]

    grouped_order = list(store.by_category().keys())
    return jsonify(
        {
            "skills": skills,
            "grouped": _group(skills, grouped_order),
            "totalCount": len(skills),
        }
    )


@skills_bp.route("/skills/categories", methods=["GET"])
def list_categories():
    """Categories that contain at least one skill, with counts."""
    store = get_skill_store()
    if store is None:
        return _store_unavailable()

    categories = [
        {"name": name, "count": len(skills)}
        for name, skills in store.by_category().items()
    ]
    return jsonify({"categories": categories})


@skills_bp.route("/skill/<skill_id>", methods=["GET"])
def get_skill(skill_id):
    """Skill detail."""
    store = get_skill_store()
    if store is None:
        return _store_unavailable()

    skill = store.get(skill_id)
    if skill is None:
        return jsonify({"error": f"Skill not found: {skill_id}"}), 404
    return jsonify({"skill": skill.to_dict()})


@skills_bp.route("/skill/<skill_id>/reference/<ref_name>", methods=["GET"])
def get_skill_reference(skill_id, ref_name):
    """Content of one of a skill's reference documents."""
    store = get_skill_store()
    if store is None:
        return _store_unavailable()

    skill = store.get(skill_id)
    if skill is None:
        return jsonify({"error": f"Skill not found: {skill_id}"}), 404

    content = store.get_reference(skill, ref_name)
    if content is None:
        return jsonify({"error": f"Reference not found: {ref_name}"}), 404

    return jsonify({"skill": skill.id, "reference": ref_name, "content": content})


@skills_bp.route("/skill/<skill_id>/execute", methods=["POST"])
def execute_skill(skill_id):
    """
    Execute a skill.

    Request (JSON):
        - input: Text the skill operates on (required)
        - context: Editor context, e.g. {"doc_name": ..., "selection": {...}} (optional)
        - provider: Provider id override (optional)
        - model: Model override (optional)

    Headers:
        - X-User-Id, X-Project-Id: Caller identity, forwarded for attribution

    Response:
        - skillId, skillName, result, usage, model
    """
    service = get_skill_execution_service()
    if service is None:
        return (
            jsonify({"error": "Skill execution not available. AI provider may not be configured."}),
            503,
        )

    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body required"}), 400

    context = data.get("context")
    if context is not None and not isinstance(context, dict):
        return jsonify({"error": "Context must be an object"}), 400

    try:
        result = service.execute(
            skill_id,
            data.get("input"),
            context=context,
            provider=data.get("provider"),
            model=data.get("model"),
            user_id=request.headers.get("X-User-Id"),
            project_id=request.headers.get("X-Project-Id"),
        )
    except SkillNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InvalidInputError as e:
        return jsonify({"error": str(e)}), 400
    except ProviderNotFoundError as e:
        logger.error(f"Skill {skill_id} execution failed: {e}")
        return jsonify({"error": str(e)}), 503
    except ProviderError as e:
        logger.error(f"Skill {skill_id} execution failed on {e.provider}: {e}")
        return (
            jsonify(
                {
                    "error": "Skill execution failed",
                    "provider": e.provider,
                    "details": str(e.cause or e),
                }
            ),
            500,
        )

    return jsonify(result.to_dict())
