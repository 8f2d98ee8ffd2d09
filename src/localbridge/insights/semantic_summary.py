from typing import Mapping

from localbridge.repositories import BaseRepository
from localbridge.settings.tools import SemanticSummarySettings
from localbridge.tools.common import get_repository, require, to_json

from .prompts import build_semantic_summary_prompt

_DESCRIPTION = (
    "This result includes an LLM prompt template for generating semantic summaries. "
    "MCP clients can send the prompt to their own LLM to get business-meaningful insights."
)


class SemanticSummaryHandler:
    def __init__(self, repositories: Mapping[str, BaseRepository], settings: SemanticSummarySettings):
        self.repositories = repositories
        self.settings = settings

    async def semantic_summary(self, database: str, table: str) -> str:
        """Return a table's schema, a sample of its rows and an LLM prompt
        template for summarizing what the table means in business terms.
        """
        repository = get_repository(self.repositories, database)
        require(table, "table")

        info = await repository.describe_table(table)
        plan = repository.query_builder.build_select(table, limit=self.settings.sample_size)
        sample = (await repository.execute(plan.text, plan.params)).rows[: self.settings.sample_size]

        return to_json({
            "database": database,
            "table": table,
            "schema": info.to_dict(),
            "sample_count": len(sample),
            "sample_data": sample,
            "llm_prompt": build_semantic_summary_prompt(info, sample, self.settings.max_columns),
            "description": _DESCRIPTION,
        })
