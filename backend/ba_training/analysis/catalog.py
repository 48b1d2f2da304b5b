"""Static catalog of training stages and their must-cover areas.

Each stage lists the areas a trainee is expected to elicit information about.
An area carries three parallel tables: the keywords used to recognise it in a
transcript, a short lesson shown when it was missed, and sample open questions
used as "next time" scripts.
"""

from dataclasses import dataclass

from ba_training.analysis.errors import CatalogError, UnknownStageError

EXPLORATORY_PASS_THRESHOLD = 0.65
DESIGN_PASS_THRESHOLD = 0.70


@dataclass(frozen=True)
class RequiredArea:
    area_id: str
    keywords: tuple[str, ...]
    lesson: str
    sample_questions: tuple[str, ...]

    @property
    def label(self) -> str:
        """Human readable name, e.g. ``customer_impact`` -> ``Customer Impact``."""
        return self.area_id.replace("_", " ").title()


@dataclass(frozen=True)
class StageDefinition:
    stage_id: str
    name: str
    objective: str
    required_areas: tuple[RequiredArea, ...]
    exploratory: bool

    @property
    def pass_threshold(self) -> float:
        return EXPLORATORY_PASS_THRESHOLD if self.exploratory else DESIGN_PASS_THRESHOLD

    @property
    def area_ids(self) -> tuple[str, ...]:
        return tuple(area.area_id for area in self.required_areas)

    def area(self, area_id: str) -> RequiredArea:
        for area in self.required_areas:
            if area.area_id == area_id:
                return area
        raise KeyError(area_id)

    def has_area(self, area_id: str) -> bool:
        return area_id in self.area_ids


def _area(area_id: str, keywords: list[str], lesson: str, questions: list[str]) -> RequiredArea:
    return RequiredArea(
        area_id=area_id,
        keywords=tuple(k.lower() for k in keywords),
        lesson=lesson,
        sample_questions=tuple(questions),
    )


# Pain points appear in three stages with different keyword sets
_PAIN_POINTS_LESSON = (
    "Understanding pain points helps identify the root causes of issues. This "
    "information is crucial for designing effective solutions that address real "
    "problems rather than symptoms."
)
_PAIN_POINTS_QUESTIONS = [
    "What are the biggest frustrations your team faces daily?",
    "What processes feel broken or inefficient?",
    "What complaints do you hear most often from stakeholders?",
]


_STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(
        stage_id="problem_exploration",
        name="Problem Exploration",
        objective="Uncover pain points and root causes",
        exploratory=True,
        required_areas=(
            _area(
                "pain_points",
                ["Frustration", "Problem", "Issue", "Pain"],
                _PAIN_POINTS_LESSON,
                _PAIN_POINTS_QUESTIONS,
            ),
            _area(
                "blockers",
                ["Slow", "Delay", "Block", "Stuck"],
                "Identifying blockers reveals what's preventing progress. This helps "
                "prioritize improvements and understand dependencies that could impact "
                "project success.",
                [
                    "What typically slows down your work?",
                    "What obstacles prevent you from meeting deadlines?",
                    "What dependencies cause the most delays?",
                ],
            ),
            _area(
                "handoffs",
                ["Handoff", "Transfer", "Team", "Department"],
                "Handoffs between teams are common failure points. Understanding these "
                "gaps helps design better integration and communication processes.",
                [
                    "Where do things fall apart between teams?",
                    "What information gets lost during handoffs?",
                    "How does work move from one department to the next?",
                ],
            ),
            _area(
                "constraints",
                ["Limit", "Constraint", "Budget", "Time"],
                "Constraints (technical, budget, time, people) significantly impact what "
                "solutions are feasible. Understanding these early prevents unrealistic "
                "expectations.",
                [
                    "What limits do you have to work within?",
                    "What resources or time constraints affect this?",
                    "What technical or business constraints exist?",
                ],
            ),
            _area(
                "customer_impact",
                ["Customer", "User", "Impact", "Experience"],
                "Understanding how problems affect customers helps prioritize "
                "improvements and ensures solutions deliver real business value.",
                [
                    "How do these issues affect your customers?",
                    "What's the business impact of these problems?",
                    "How do customers experience these challenges?",
                ],
            ),
        ),
    ),
    StageDefinition(
        stage_id="as_is",
        name="As-Is Process/Analysis",
        objective="Understand current processes and systems",
        exploratory=True,
        required_areas=(
            _area(
                "current_process",
                ["Process", "Workflow", "Steps", "Procedure"],
                "Mapping current processes reveals inefficiencies and helps stakeholders "
                "see the full picture. This baseline is essential for designing "
                "improvements.",
                [
                    "Walk me through your current process step by step.",
                    "What does a typical day look like for your team?",
                    "How do you currently handle this workflow?",
                ],
            ),
            _area(
                "pain_points",
                ["Frustration", "Problem", "Issue", "Pain"],
                _PAIN_POINTS_LESSON,
                _PAIN_POINTS_QUESTIONS,
            ),
            _area(
                "inefficiencies",
                ["Slow", "Waste", "Redundant", "Manual"],
                "Identifying inefficiencies helps quantify improvement opportunities and "
                "build a business case for change.",
                [
                    "Where does slow or manual work waste the most time?",
                    "What tasks feel repetitive or manual?",
                    "Which processes take longer than expected?",
                ],
            ),
            _area(
                "stakeholder_roles",
                ["Role", "Responsibility", "Team", "Department"],
                "Understanding who does what helps identify skill gaps, training needs, "
                "and opportunities for role optimization.",
                [
                    "What role does each team play in the process?",
                    "What are the main responsibilities of each team member?",
                    "How do roles and responsibilities overlap?",
                ],
            ),
            _area(
                "system_gaps",
                ["System", "Tool", "Gap", "Missing"],
                "System gaps reveal where technology isn't supporting the business needs. "
                "This helps prioritize technical improvements.",
                [
                    "Which systems don't work well together?",
                    "Where do you need better tools or automation?",
                    "What manual work could be automated?",
                ],
            ),
        ),
    ),
    StageDefinition(
        stage_id="as_is_mapping",
        name="As-Is Process Map",
        objective="Document current end-to-end flow to feed the backlog",
        exploratory=True,
        required_areas=(
            _area(
                "process_boundaries",
                ["Start", "Trigger", "End", "Complete", "Boundary"],
                "Clear start and end points define the scope of a process map. Without "
                "them the map keeps growing and nobody agrees on what done looks like.",
                [
                    "What triggers this process to start, and what proves it's done?",
                    "Where does your part of the process begin and end?",
                ],
            ),
            _area(
                "actors_systems",
                ["Actor", "Role", "System", "Tool", "Responsibility"],
                "Every step on a map needs an owner and the tool they use. Naming actors "
                "and systems exposes swimlanes and hidden manual work.",
                [
                    "Who does what, and using which tools?",
                    "Which roles and systems touch this work along the way?",
                ],
            ),
            _area(
                "flow_handoffs",
                ["Flow", "Handoff", "Transfer", "Sequence", "Path"],
                "The normal path and its variations show where work waits or bounces "
                "between people. Handoffs are where most delays hide.",
                [
                    "What's the normal path, and where do variations occur?",
                    "How does work get passed from one person to the next?",
                ],
            ),
            _area(
                "data_rules",
                ["Data", "Document", "Rule", "Policy", "Input", "Output"],
                "Documents, data and business rules explain why each step exists. They "
                "become acceptance criteria once the backlog is written.",
                [
                    "What documents or data flow through each step, and what rules apply?",
                    "What inputs does each step need, and what does it produce?",
                ],
            ),
            _area(
                "pain_points",
                ["Pain", "Problem", "Slow", "Fail", "Bottleneck"],
                _PAIN_POINTS_LESSON,
                [
                    "Where does it slow down or fail, and what are the current metrics?",
                    *_PAIN_POINTS_QUESTIONS,
                ],
            ),
        ),
    ),
    StageDefinition(
        stage_id="to_be",
        name="To-Be Process",
        objective="Design future state solutions",
        exploratory=False,
        required_areas=(
            _area(
                "future_state",
                ["Future", "Ideal", "Vision", "Goal"],
                "Envisioning the future state helps stakeholders think beyond current "
                "limitations and identify what success looks like.",
                [
                    "What would an ideal process look like?",
                    "How would you like things to work in the future?",
                    "What would success look like for this project?",
                ],
            ),
            _area(
                "improvements",
                ["Better", "Improve", "Enhance", "Optimize"],
                "Identifying specific improvements helps prioritize changes and ensures "
                "the solution addresses real needs.",
                [
                    "What specific changes would make the biggest difference?",
                    "What improvements would have the most impact?",
                    "What would you change if you could start over?",
                ],
            ),
            _area(
                "requirements",
                ["Need", "Requirement", "Must", "Should"],
                "Clear requirements ensure the solution meets business needs and helps "
                "prevent scope creep during implementation.",
                [
                    "What must the solution do to be successful?",
                    "What are the non-negotiable requirements?",
                    "What features are essential vs. nice-to-have?",
                ],
            ),
            _area(
                "success_criteria",
                ["Success", "Measure", "Metric", "Outcome"],
                "Defining success criteria helps measure project success and ensures "
                "everyone has the same expectations.",
                [
                    "How will we know this project is successful?",
                    "What metrics would indicate improvement?",
                    "What outcomes are you looking for?",
                ],
            ),
            _area(
                "implementation_plan",
                ["Implement", "Plan", "Timeline", "Rollout"],
                "Understanding implementation considerations helps create realistic "
                "timelines and identify potential risks.",
                [
                    "What would be the best way to implement this?",
                    "What phases or milestones should we consider?",
                    "What resources would be needed for implementation?",
                ],
            ),
        ),
    ),
    StageDefinition(
        stage_id="solution_design",
        name="Solution Design",
        objective="Define technical requirements and implementation",
        exploratory=False,
        required_areas=(
            _area(
                "technical_requirements",
                ["Technical", "Requirement", "Specification", "Feature"],
                "Technical requirements ensure the solution is feasible and can be "
                "properly implemented by the development team.",
                [
                    "What technical capabilities are needed?",
                    "What systems need to integrate with this solution?",
                    "What are the performance requirements?",
                ],
            ),
            _area(
                "architecture",
                ["Architecture", "Design", "Structure", "Framework"],
                "Understanding architectural needs helps design scalable, maintainable "
                "solutions that fit the existing technology landscape.",
                [
                    "How should this solution fit into your current architecture?",
                    "What architectural patterns should we follow?",
                    "How will this scale as your business grows?",
                ],
            ),
            _area(
                "data_models",
                ["Data", "Model", "Database", "Schema"],
                "Data modeling ensures the solution can handle the required information "
                "and relationships effectively.",
                [
                    "What data needs to be captured and stored?",
                    "How should data flow between systems?",
                    "What data relationships are important?",
                ],
            ),
            _area(
                "integration_points",
                ["Integration", "API", "Interface", "Connect"],
                "Integration points are critical for ensuring the solution works with "
                "existing systems and processes.",
                [
                    "What systems need to connect to this solution?",
                    "How should data flow between different platforms?",
                    "What APIs or interfaces are needed?",
                ],
            ),
            _area(
                "deployment_plan",
                ["Deploy", "Rollout", "Migration", "Timeline"],
                "Deployment planning ensures smooth rollout and minimizes disruption to "
                "ongoing operations.",
                [
                    "How should we roll out this solution?",
                    "What deployment strategy would work best?",
                    "How can we minimize risk during implementation?",
                ],
            ),
        ),
    ),
)


def _validate(stages: tuple[StageDefinition, ...]) -> dict[str, StageDefinition]:
    by_id: dict[str, StageDefinition] = {}
    for stage in stages:
        if stage.stage_id in by_id:
            raise CatalogError(f"Duplicate stage id {stage.stage_id!r}")
        if not stage.required_areas:
            raise CatalogError(f"Stage {stage.stage_id!r} has no required areas")
        if len(set(stage.area_ids)) != len(stage.area_ids):
            raise CatalogError(f"Stage {stage.stage_id!r} repeats an area id")
        for area in stage.required_areas:
            if not area.keywords or not area.lesson or not area.sample_questions:
                raise CatalogError(
                    f"Area {area.area_id!r} in stage {stage.stage_id!r} needs keywords, "
                    "a lesson and at least one sample question"
                )
        by_id[stage.stage_id] = stage
    return by_id


_STAGES_BY_ID = _validate(_STAGES)


def get_stage(stage_id: str) -> StageDefinition:
    """Look up a stage by id."""
    try:
        return _STAGES_BY_ID[stage_id]
    except KeyError:
        raise UnknownStageError(stage_id) from None


def list_stages() -> list[StageDefinition]:
    """All stages in curriculum order."""
    return list(_STAGES)
