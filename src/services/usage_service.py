from datetime import datetime, date, timezone
from typing import Optional
from sqlmodel import select, func
from src.db.session import new_session
from src.models.usage_log import UsageLog


# Salva uma linha de consumo (abre e fecha sessão rapidinho)
def log_usage(model_id: str, usage_data: dict, time_taken: float, tag: str,
              error_kind: Optional[str] = None):
    if not usage_data and not error_kind:
        return

    usage_data = usage_data or {}
    with new_session() as session:
        log = UsageLog(
            model_id=model_id,
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
            time_taken_seconds=time_taken,
            context_tag=tag,
            error_kind=error_kind
        )
        session.add(log)
        session.commit()


def get_daily_usage_stats(day: Optional[date] = None):
    """
    Consumo de tokens e chamadas do dia, agrupado por modelo e por contexto
    (geração de deck, correção de resposta, healthcheck).
    """
    # Dia em UTC, o mesmo fuso gravado em UsageLog.timestamp
    day = day or datetime.now(timezone.utc).date()
    start_of_day = datetime.combine(day, datetime.min.time(), tzinfo=timezone.utc)

    with new_session() as session:
        statement = (
            select(
                UsageLog.model_id,
                UsageLog.context_tag,
                func.count(UsageLog.id).label("request_count"),
                func.sum(UsageLog.total_tokens).label("total_tokens_sum"),
                func.sum(UsageLog.time_taken_seconds).label("total_time"),
                func.count(UsageLog.error_kind).label("error_count")
            )
            .where(UsageLog.timestamp >= start_of_day)
            .group_by(UsageLog.model_id, UsageLog.context_tag)
        )

        results = session.exec(statement).all()

        stats = []
        grand_total_tokens = 0
        grand_total_requests = 0
        grand_total_errors = 0

        for row in results:
            model, tag, reqs, tokens, elapsed, errors = row
            tokens = tokens or 0
            grand_total_tokens += tokens
            grand_total_requests += reqs
            grand_total_errors += errors

            stats.append({
                "model": model,
                "context": tag,
                "requests_today": reqs,
                "tokens_today": tokens,
                "errors_today": errors,
                "avg_latency": round(elapsed / reqs, 2) if reqs > 0 else 0
            })

        return {
            "date": str(day),
            "summary": {
                "total_requests": grand_total_requests,
                "total_tokens": grand_total_tokens,
                "total_errors": grand_total_errors
            },
            "by_model": stats
        }
