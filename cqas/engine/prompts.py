"""Evaluation prompt construction."""

SYSTEM_INSTRUCTIONS = (
    "You are an expert in customer service call quality. Your job is to rigorously "
    "evaluate whether an agent complies or does not comply with certain expected "
    "behaviors. You are very strict in your evaluations and follow the specified "
    "criteria to the letter."
)

EVALUATION_TEMPLATE = """\
Based on the following transcript of a phone call, evaluate whether the agent is compliant or non-compliant with this behavior:

BEHAVIOR TO EVALUATE: {name}
DESCRIPTION: {description}
EVALUATION CRITERIA: {criteria}

CALL TRANSCRIPT:
{transcript}

IMPORTANT: Read the evaluation criteria and the behavior description very carefully. If the behavior states that several criteria or guidelines must be met (for example, "must meet at least 3 of 4 criteria"), evaluate each one individually before deciding whether it is COMPLIANT or NON-COMPLIANT.

For example, if the criteria say the agent must meet 3 of 4 items and the agent only meets 1 or 2, the evaluation must be "non-compliant".

Your answer must follow EXACTLY this JSON format:
{{
  "evaluation": "compliant" OR "non-compliant",
  "comments": "Detailed explanation of why it is compliant or non-compliant, stating specifically which criteria were met and which were not."
}}
"""


def build_evaluation_prompt(
    name: str,
    description: str | None,
    criteria: str | None,
    transcript: str,
) -> str:
    """Build the user prompt for one behavior. Same inputs always give the same text."""
    return EVALUATION_TEMPLATE.format(
        name=name,
        description=description or "",
        criteria=criteria or "",
        transcript=transcript,
    )
