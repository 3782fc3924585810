"""
Catalog API routes - read-only browsing of domains and published tests.
"""

import time
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload, selectinload

from testtutor.database import get_db
from testtutor.helpers import isoformat
from testtutor.logging_config import get_logger, log_with_context
from testtutor.models.domain import Domain
from testtutor.models.question import Question
from testtutor.models.test import Test

router = APIRouter()
logger = get_logger("http")


def serialize_domain(domain: Domain) -> dict:
    config = domain.config_dict
    return {
        "id": str(domain.id),
        "name": domain.name,
        "display_name": domain.display_name,
        "description": domain.description,
        "config": {
            "default_time_limit": config.get("default_time_limit"),
            "default_pass_percentage": config.get("default_pass_percentage"),
        },
    }


def serialize_test(test: Test, include_questions: bool = False) -> dict:
    """Serialize a Test; questions are sent without the answer key."""
    result = {
        "id": str(test.id),
        "title": test.title,
        "description": test.description,
        "status": test.status,
        "domain": {
            "id": str(test.domain.id),
            "name": test.domain.name,
            "display_name": test.domain.display_name,
        } if test.domain else None,
        "pass_percentage": test.effective_pass_percentage,
        "time_limit": test.effective_time_limit,
        "published_at": isoformat(test.published_at),
    }
    if include_questions:
        result["questions"] = [
            {
                "id": str(q.id),
                "stem": q.stem,
                "type": q.type,
                "points": q.points,
                "difficulty": q.difficulty,
                "options": [
                    {"index": index, "id": str(o.id), "label": o.label}
                    for index, o in enumerate(q.ordered_options)
                ],
            }
            for q in test.questions
        ]
    return result


@router.get("/api/domains")
def list_domains(db: Session = Depends(get_db)):
    """List active domains ordered by display name."""
    domains = db.query(Domain).filter(
        Domain.is_active.is_(True)
    ).order_by(Domain.display_name.asc()).all()
    return {"data": [serialize_domain(d) for d in domains]}


@router.get("/api/tests")
def list_tests(
    domain_id: Optional[str] = Query(None, description="Filter by domain ID"),
    domain_name: Optional[str] = Query(None, description="Filter by domain slug"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Results per page"),
    db: Session = Depends(get_db)
):
    """List published public tests, newest first, with pagination."""
    start_time = time.time()

    query = db.query(Test).options(joinedload(Test.domain)).filter(
        Test.status == "PUBLISHED",
        Test.is_public.is_(True)
    )

    if domain_id:
        query = query.filter(Test.domain_id == domain_id)
    elif domain_name:
        query = query.join(Domain).filter(Domain.name == domain_name)

    total_count = query.count()

    offset = (page - 1) * per_page
    tests = query.order_by(
        Test.published_at.desc().nullslast(), Test.created_at.desc()
    ).offset(offset).limit(per_page).all()

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Listed {} tests (page {}, total {})".format(len(tests), page, total_count),
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {
        "data": [serialize_test(t) for t in tests],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total_count,
            "total_pages": (total_count + per_page - 1) // per_page
        }
    }


@router.get("/api/tests/{test_id}")
def get_test(test_id: str, include_questions: bool = Query(False),
             db: Session = Depends(get_db)):
    """Get a test, optionally with its questions and options."""
    test = db.query(Test).options(
        joinedload(Test.domain),
        selectinload(Test.questions).selectinload(Question.options)
    ).filter(Test.id == test_id).first()

    if not test:
        raise HTTPException(status_code=404, detail="Test not found")

    return serialize_test(test, include_questions=include_questions)
