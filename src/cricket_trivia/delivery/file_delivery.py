"""
File delivery channel
"""
import json
from pathlib import Path
from typing import List

from cricket_trivia.core.entities import PipelineResult
from cricket_trivia.core.filters import category_label
from cricket_trivia.delivery.base import DeliveryChannel

OPTION_LETTERS = "ABCD"


class FileDelivery(DeliveryChannel):
    name = "file"

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def paths(self, category: str, quiz_date: str):
        base = self.output_dir / f"{category}_{quiz_date}"
        return base.with_suffix(".json"), base.with_suffix(".md")

    async def deliver(
        self,
        *,
        category: str,
        quiz_date: str,
        result: PipelineResult,
    ) -> None:
        json_path, md_path = self.paths(category, quiz_date)

        json_path.write_text(
            json.dumps(result.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

        md_lines: List[str] = [
            f"# {category_label(category)} quiz ({quiz_date})",
            "",
            f"{result.achieved}/{result.requested} questions",
        ]
        if result.cause:
            md_lines.append(f"*Partial: {result.cause}*")
        md_lines.append("")

        for number, item in enumerate(result.items, start=1):
            md_lines.append(f"## {number}. {item.question}")
            for index, (letter, option) in enumerate(zip(OPTION_LETTERS, item.options)):
                marker = " **(correct)**" if index == item.correct_index else ""
                md_lines.append(f"- {letter}. {option}{marker}")
            md_lines.append("")
            md_lines.append(f"**Explanation:** {item.explanation}")
            if item.quality_grade:
                md_lines.append(f"**Grade:** {item.quality_grade.value}")
            if item.quality_score is not None:
                md_lines.append(f"**Quality:** {item.quality_score:.0f}/100")
            md_lines.append(f"- {item.source}")
            md_lines.append("\n")

        md_path.write_text("\n".join(md_lines), encoding="utf-8")
