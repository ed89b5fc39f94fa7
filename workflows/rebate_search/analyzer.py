"""Analyzer - extracts structured rebate programs from search hits with the LLM."""

import json
import logging
import re
from typing import List, Dict, Any, Optional

from engine.models import SearchResult
from llm_client import LLMClient

logger = logging.getLogger(__name__)

PROGRAM_TYPES = {
    "rebate": "Rebate",
    "grant": "Grant",
    "tax credit": "Tax Credit",
    "tax-credit": "Tax Credit",
    "low-interest loan": "Low-Interest Loan",
    "loan": "Low-Interest Loan",
}

SYSTEM_PROMPT = """You extract home energy rebate programs from web search results.

Return ONLY a JSON object of this shape:
{
    "programs": [
        {
            "programName": "string",
            "programType": "Rebate|Grant|Tax Credit|Low-Interest Loan",
            "summary": "string",
            "collapsedSummary": "'$X-$Y for [project]' or 'Up to X% for [project]'",
            "amount": "'$X-$Y' or 'Up to X%'",
            "eligibleProjects": [{"name": "string", "amount": "string"}],
            "eligibleRecipients": "string",
            "geographicScope": "string",
            "requirements": ["string"],
            "applicationProcess": "string",
            "deadline": "string",
            "websiteLink": "string",
            "contactInfo": "string",
            "processingTime": "string"
        }
    ]
}

Only include programs supported by the search results. Use an empty list when none are found."""


class AnalysisError(Exception):
    """LLM output could not be turned into a programs list."""


def format_results_for_prompt(results: List[SearchResult]) -> str:
    """Compact JSON of the hits for the user prompt"""
    return json.dumps([r.to_dict() for r in results], indent=2)


def build_messages(results: List[SearchResult], category: str, county: Optional[str] = None) -> List[Dict[str, str]]:
    scope = f"{county} County, California" if county else ("California" if category == "State" else "United States (California residents)")
    user_prompt = (
        f"Category: {category} rebate programs\n"
        f"Area: {scope}\n\n"
        "Extract the home improvement and energy efficiency rebate programs from these "
        "search results. Be specific about program names, types, amounts and eligible "
        "projects. Return ONLY the JSON object.\n\n"
        f"{format_results_for_prompt(results)}"
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def parse_analysis_content(content: Optional[str]) -> Dict[str, Any]:
    """
    Parse the LLM reply into a dict with a programs list.

    Raises:
        AnalysisError: If the reply is empty, not JSON, or lacks a programs list
    """
    if not content or not content.strip():
        raise AnalysisError("LLM returned an empty response")

    text = content.strip()
    # Models sometimes wrap JSON in a markdown fence
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Failed to parse LLM response as JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise AnalysisError("LLM response is not a JSON object")
    if not isinstance(parsed.get("programs"), list):
        raise AnalysisError("LLM response 'programs' field is not a list")
    return parsed


def normalize_program_type(program_type: Any) -> str:
    text = str(program_type).strip() if program_type is not None else ""
    if not text:
        return "Not Available"
    return PROGRAM_TYPES.get(text.lower(), text)


def _normalize_projects(projects: Any, default_amount: str) -> List[Dict[str, str]]:
    if not isinstance(projects, list):
        return []
    normalized = []
    for project in projects:
        if isinstance(project, dict):
            name = str(project.get("name") or "").strip()
            amount = str(project.get("amount") or default_amount)
        else:
            name = str(project).strip()
            amount = default_amount
        if name:
            normalized.append({"name": name, "amount": amount})
    return normalized


def collapsed_summary(amount: str, projects: List[Dict[str, str]]) -> str:
    """'$X-$Y for [project]', at most 60 characters"""
    project_type = projects[0]["name"].lower() if projects else "home improvements"
    summary = f"{amount} for {project_type}"
    if len(summary) > 60:
        max_project_length = max(0, 60 - (len(amount) + 5))
        summary = f"{amount} for {project_type[:max_project_length]}"
    return summary


def normalize_program(program: Dict[str, Any], category: str) -> Dict[str, Any]:
    """Fill defaults and normalize the type of one extracted program."""
    amount = str(program.get("amount") or "Not specified")
    projects = _normalize_projects(program.get("eligibleProjects"), amount)
    requirements = program.get("requirements")

    return {
        "programName": str(program.get("programName") or "Not Available"),
        "programType": normalize_program_type(program.get("programType")),
        "summary": str(program.get("summary") or "No summary available"),
        "collapsedSummary": str(program.get("collapsedSummary") or collapsed_summary(amount, projects)),
        "amount": amount,
        "eligibleProjects": projects,
        "eligibleRecipients": str(program.get("eligibleRecipients") or "Not specified"),
        "geographicScope": str(program.get("geographicScope") or "Not specified"),
        "requirements": [str(r) for r in requirements] if isinstance(requirements, list) else [],
        "applicationProcess": str(program.get("applicationProcess") or "Not specified"),
        "deadline": str(program.get("deadline") or "Not specified"),
        "websiteLink": str(program.get("websiteLink") or "#"),
        "contactInfo": str(program.get("contactInfo") or "Not specified"),
        "processingTime": str(program.get("processingTime") or "Not specified"),
        "category": category.lower(),
    }


def analyze_results(
    results: List[SearchResult],
    category: str,
    county: Optional[str] = None,
    llm_client: Optional[LLMClient] = None,
) -> Dict[str, Any]:
    """
    Extract rebate programs from search hits.

    Args:
        results: Deduplicated search hits
        category: Federal, State or County
        county: County name for County searches
        llm_client: Client for the text-generation provider

    Returns:
        {"programs": [...], "metadata": {...}}

    Raises:
        AnalysisError: If the LLM call fails or returns unusable output
    """
    client = llm_client or LLMClient()
    logger.info(f"Analyzing {len(results)} search results for {category}{f' / {county}' if county else ''}")

    try:
        response = client.chat_complete(
            build_messages(results, category, county),
            response_format={"type": "json_object"},
        )
    except RuntimeError as e:
        raise AnalysisError(f"LLM request failed: {e}") from e

    parsed = parse_analysis_content(client.extract_content(response))

    programs = []
    for program in parsed["programs"]:
        if not isinstance(program, dict):
            logger.warning(f"Skipping invalid program entry: {program!r}")
            continue
        programs.append(normalize_program(program, category))

    logger.info(f"✓ Extracted {len(programs)} programs")
    return {
        "programs": programs,
        "metadata": {
            "model": client.model,
            "resultCount": len(results),
            "finishReason": client.extract_finish_reason(response),
        },
    }
