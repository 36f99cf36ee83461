"""Draft Orchestrator for the mobile proposal pipeline.

Sequences vision aggregation, remedy resolution, notes composition, scope
enhancement, market pricing, package synthesis and confidence scoring into
a single DraftOutput.

Every expected upstream failure degrades the draft instead of failing it:
no zip or no market data prices at a neutral multiplier, a failed
enhancement falls back to the filtered base scope, malformed photo findings
are skipped. Only unexpected exceptions propagate.
"""

import asyncio
import time
from typing import Dict, List, Mapping, Optional, Protocol

import structlog

from config.errors import DraftPipelineError, ErrorCode
from config.settings import Settings, settings as default_settings
from models.draft import (
    DraftOutput,
    JobInput,
    OneBuildProvenance,
    PhotoInput,
    PricingProvenance,
    PricingProvenanceInputs,
    TemplateInput,
    UserProfile,
)
from models.market_pricing import MarketPricingResult
from services.confidence_scorer import has_substantial_notes, score_confidence
from services.market_pricing_service import (
    MarketBaselines,
    MarketPricingService,
    extract_zip,
    market_multiplier_from_pricing,
)
from services.notes_composer import build_enhancement_notes
from services.package_builder import PriceRangeFn, build_pricing_inputs, synthesize_packages
from services.pricebook import compute_price_range as default_compute_price_range
from services.remedy_heuristics import detect_issue_type, recommend_remedy, remedy_family
from services.remedy_service import (
    DEFAULT_ISSUE_KEYWORDS,
    RemedyLookup,
    RemedySelections,
    compose_base_scope,
    generate_remedy_scope_items,
    get_remedy_scope_items,
    issue_title,
    parse_remedy_selections,
)
from services.scope_enhancer import EnhanceScopeRequest, EnhanceScopeResult, ScopeEnhancer
from services.vision_aggregator import VisionContext, extract_vision_context
from utils.draft_logger import log_draft_complete, log_draft_stage, log_draft_start

logger = structlog.get_logger()

ENHANCEMENT_FAILED_QUESTION = "Review the generated scope and adjust for site-specific conditions."
NO_PHOTOS_QUESTION = "Add at least 1 photo to improve accuracy."
MAX_NEEDS_MORE_PHOTOS_QUESTIONS = 5


class ScopeEnhancerProtocol(Protocol):
    async def enhance_scope(self, request: EnhanceScopeRequest) -> EnhanceScopeResult: ...


def remedy_questions(vision: VisionContext, selections: RemedySelections) -> List[str]:
    """Recommendation prompts for detected issues with no remedy marker.

    At most one question per issue type.
    """
    questions: List[str] = []
    asked = set()
    for label in vision.issues + vision.damage:
        family = remedy_family(detect_issue_type(label))
        if family is None or family in selections or family in asked:
            continue

        recommendation = recommend_remedy(label)
        if recommendation is None:
            continue
        asked.add(family)

        reason = f" {recommendation.rationale[0]}" if recommendation.rationale else ""
        questions.append(
            f"{issue_title(family)}: {recommendation.recommended.value} recommended.{reason} "
            f"Confirm repair or replace."
        )
    return questions


def build_questions(
    enhance_succeeded: bool,
    photo_count: int,
    vision: VisionContext,
    selections: RemedySelections,
) -> List[str]:
    """Open questions for the contractor, in display order."""
    questions: List[str] = []
    if not enhance_succeeded:
        questions.append(ENHANCEMENT_FAILED_QUESTION)
    if photo_count == 0:
        questions.append(NO_PHOTOS_QUESTION)
    questions.extend(remedy_questions(vision, selections))
    # needs_more_photos is already de-duplicated in first-seen order
    questions.extend(vision.needs_more_photos[:MAX_NEEDS_MORE_PHOTOS_QUESTIONS])
    return questions


class DraftOrchestrator:
    """Generates mobile proposal drafts.

    Collaborators are injected; defaults are the production services.
    """

    def __init__(
        self,
        market_pricing: Optional[MarketPricingService] = None,
        scope_enhancer: Optional[ScopeEnhancerProtocol] = None,
        compute_price_range: PriceRangeFn = default_compute_price_range,
        remedy_lookup: RemedyLookup = get_remedy_scope_items,
        settings: Optional[Settings] = None,
        market_baselines: Optional[MarketBaselines] = None,
        issue_keywords: Mapping[str, str] = DEFAULT_ISSUE_KEYWORDS,
    ):
        """Initialize DraftOrchestrator.

        Args:
            market_pricing: Regional pricing cache gateway.
            scope_enhancer: Scope enhancement collaborator.
            compute_price_range: Base pricebook function.
            remedy_lookup: Remedy scope template lookup.
            settings: Settings (default: module singleton).
            market_baselines: Per-trade labor rate baselines.
            issue_keywords: Remedy marker keyword mapping.
        """
        self.market_pricing = market_pricing or MarketPricingService()
        self.scope_enhancer = scope_enhancer or ScopeEnhancer()
        self.compute_price_range = compute_price_range
        self.remedy_lookup = remedy_lookup
        self.settings = settings or default_settings
        self.market_baselines = market_baselines or MarketBaselines()
        self.issue_keywords = issue_keywords

    async def _lookup_market(
        self,
        trade_id: str,
        zipcode: Optional[str],
    ) -> Optional[MarketPricingResult]:
        if zipcode is None:
            logger.info("market_pricing_skipped", trade_id=trade_id, reason="no_zipcode")
            return None
        return await self.market_pricing.get_trade_pricing_best_effort(
            trade_id,
            zipcode,
            ttl_hours=self.settings.pricing_cache_ttl_hours,
            timeout_ms=self.settings.pricing_live_timeout_ms,
        )

    async def _enhance(self, request: EnhanceScopeRequest) -> EnhanceScopeResult:
        try:
            return await self.scope_enhancer.enhance_scope(request)
        except DraftPipelineError as e:
            logger.warning("scope_enhancement_error", code=e.code, error=e.message)
            return EnhanceScopeResult(
                success=False,
                enhanced_scope=list(request.base_scope),
                error=e.to_dict(),
            )

    async def generate_mobile_draft(
        self,
        job: JobInput,
        template: TemplateInput,
        user: UserProfile,
        photos: List[PhotoInput],
    ) -> DraftOutput:
        """Generate a three-package draft for a job.

        Args:
            job: Job record.
            template: Proposal template for the job type.
            user: User pricing preferences.
            photos: Job photos with optional findings.

        Returns:
            DraftOutput with GOOD/BETTER/BEST packages.
        """
        start_time = time.time()
        log_draft_start(job.id, template.trade_id, len(photos))

        # 1. Signals
        vision = extract_vision_context(photos)
        selections = parse_remedy_selections(job.job_notes, self.issue_keywords)
        remedy_scope = generate_remedy_scope_items(selections, self.remedy_lookup)
        base_scope = compose_base_scope(template.base_scope, selections, remedy_scope)
        notes = build_enhancement_notes(vision, job.job_notes)

        log_draft_stage(job.id, "signals", {
            "photos_with_findings": vision.photos_with_findings,
            "avg_confidence": round(vision.avg_confidence, 3),
            "remedies": {k: v.value for k, v in selections.items()},
            "base_scope_items": len(base_scope),
        })

        # 2. Enhancement and market lookup run concurrently
        request = EnhanceScopeRequest(
            job_type_name=template.job_type_name,
            base_scope=base_scope,
            client_name=job.client_name,
            address=job.address,
            job_notes=notes or None,
        )
        zipcode = extract_zip(job.address)
        enhance, market = await asyncio.gather(
            self._enhance(request),
            self._lookup_market(template.trade_id, zipcode),
        )

        scope = enhance.enhanced_scope if enhance.success else base_scope
        market_multiplier = market_multiplier_from_pricing(
            template.trade_id, market, self.market_baselines
        )

        log_draft_stage(job.id, "enhance_and_market", {
            "enhance_succeeded": enhance.success,
            "scope_items": len(scope),
            "zipcode": zipcode,
            "market_source": market.source.value if market else None,
            "market_multiplier": round(market_multiplier.multiplier, 4),
        })

        # 3. Pricing and packages
        pricing_inputs = build_pricing_inputs(
            template, job, user, market_multiplier.multiplier
        )
        try:
            packages = synthesize_packages(
                job,
                template,
                pricing_inputs,
                scope,
                self.compute_price_range,
                remedy_scope.scope_sections,
            )
        except (ValueError, ArithmeticError) as e:
            raise DraftPipelineError(
                code=ErrorCode.PRICEBOOK_ERROR,
                message=f"Price synthesis failed: {str(e)}",
                details={"job_id": job.id, "trade_id": template.trade_id},
            )

        # 4. Questions and confidence
        questions = build_questions(enhance.success, len(photos), vision, selections)
        confidence = score_confidence(
            enhance_succeeded=enhance.success,
            photo_count=len(photos),
            vision_avg_confidence=vision.avg_confidence,
            has_detected_issues=vision.has_detected_issues,
            has_substantial_notes=has_substantial_notes(job.job_notes),
            needs_more_photos_count=len(vision.needs_more_photos),
            market_data_available=market is not None,
        )

        onebuild = None
        if market is not None:
            onebuild = OneBuildProvenance(
                source=market.source,
                zipcode=market.meta.zipcode,
                basis=market_multiplier.basis,
            )

        output = DraftOutput(
            packages=packages,
            confidence=confidence,
            questions=questions,
            pricing=PricingProvenance(
                pricebook_version=self.settings.pricebook_version,
                inputs=PricingProvenanceInputs(
                    **pricing_inputs.model_dump(),
                    market_basis=market_multiplier.basis,
                    onebuild=onebuild,
                ),
            ),
        )

        duration_ms = int((time.time() - start_time) * 1000)
        totals: Dict[str, int] = {tier.value: pkg.total for tier, pkg in packages.items()}
        log_draft_complete(job.id, confidence, totals, questions, duration_ms)

        logger.info(
            "draft_generated",
            job_id=job.id,
            trade_id=template.trade_id,
            confidence=confidence,
            enhance_succeeded=enhance.success,
            market_basis=market_multiplier.basis.value,
            duration_ms=duration_ms,
        )
        return output


async def generate_mobile_draft(
    job: JobInput,
    template: TemplateInput,
    user: UserProfile,
    photos: List[PhotoInput],
) -> DraftOutput:
    """Generate a draft with the default production collaborators."""
    return await DraftOrchestrator().generate_mobile_draft(job, template, user, photos)
