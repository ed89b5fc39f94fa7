"""Flask web application for rebate program lookups."""

import logging
from typing import Optional

from flask import Flask, request, jsonify

from engine.models import format_timestamp
from engine.rebate_engine import RebateEngine
from workflows.rebate_search.workflow import PipelineError

logger = logging.getLogger(__name__)


def _read_request():
    """Pull (category, county) out of the JSON body."""
    data = request.get_json(silent=True) or {}
    category = str(data.get('category') or '').strip()
    county = str(data.get('county') or '').strip() or None
    return category, county


def create_app(engine: Optional[RebateEngine] = None) -> Flask:
    """
    Build the web API around a RebateEngine.

    Args:
        engine: Engine to serve; built from config when omitted
    """
    app = Flask(__name__)
    rebate_engine = engine or RebateEngine()
    app.config['REBATE_ENGINE'] = rebate_engine

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok"})

    @app.route('/api/check-cache', methods=['POST'])
    def check_cache():
        """
        Check the cache without running the pipeline.

        Request body:
        {
            "category": "Federal" | "State" | "County",
            "county": str (County only)
        }

        Returns:
        {
            "found": bool,
            "programs": [...],
            "source": {"search": str, "analysis": str},
            "timestamp": str
        }
        """
        category, county = _read_request()
        if not category:
            return jsonify({"error": "Category is required"}), 400

        try:
            lookup = rebate_engine.check_cache(category, county)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        if not lookup.found:
            return jsonify({"found": False})

        entry = lookup.entry
        return jsonify({
            "found": True,
            "programs": entry.programs,
            "source": entry.provenance.to_dict(),
            "timestamp": format_timestamp(entry.created_at),
        })

    @app.route('/api/analyze', methods=['POST'])
    def analyze():
        """
        Find programs for a category, from cache or the live pipeline.

        Request body:
        {
            "category": "Federal" | "State" | "County",
            "county": str (County only)
        }

        Returns:
        {
            "category": str,
            "county": str | null,
            "programs": [...],
            "source": {"search": str, "analysis": str},
            "cached": bool,
            "timestamp": str
        }
        """
        category, county = _read_request()
        if not category:
            return jsonify({"error": "Category is required"}), 400

        try:
            answer = rebate_engine.find_programs(category, county)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except PipelineError as e:
            logger.error(f"Analyze failed for {category}: {e.message}")
            return jsonify({"error": e.message}), 502
        except Exception as e:
            logger.error(f"Analyze error: {e}", exc_info=True)
            return jsonify({"error": str(e)}), 500

        return jsonify(answer.to_dict())

    @app.route('/api/cache/status', methods=['GET'])
    def cache_status():
        return jsonify(rebate_engine.status())

    return app
