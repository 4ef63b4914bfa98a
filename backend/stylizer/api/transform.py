"""
Image transformation endpoint.

POST /transform runs strictly in sequence:
1. Authenticate (dependency)
2. Validate image and style
3. Quota gate (no provider call when the quota is used up)
4. Call the image provider, bounded by a timeout
5. Charge the transformation; a lost race discards the generated image
6. Return the image bytes with usage stats in the X-Usage-Stats header

The uploaded file is spooled to a temporary file that is removed on every
exit path.
"""
import asyncio
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from stylizer.ai.base import GeneratedImage, ImageProvider
from stylizer.ai.factory import get_image_provider
from stylizer.auth.dependencies import AuthenticatedUser, get_current_user
from stylizer.config import settings
from stylizer.database import get_db
from stylizer.errors import ProviderTimeout, QuotaExceeded, TransformationFailed, ValidationError
from stylizer.services.usage_service import UsageService
from stylizer.storage.uploads import StoredUpload, stored_upload, validate_image_upload
from stylizer.styles import Style
from stylizer.utils.logging import log_provider_failure, log_provider_request, log_quota_exceeded
from stylizer.utils.metrics import (
    image_provider_failures_total,
    image_provider_latency_seconds,
    image_provider_requests_total,
    quota_rejections_total,
    transformations_recorded_total,
)

logger = logging.getLogger(__name__)

router = APIRouter()

USAGE_HEADER = "X-Usage-Stats"


async def _quota_exceeded(db: AsyncSession, user_id: str, stage: str) -> QuotaExceeded:
    """Build the 429 error carrying the caller's current usage."""
    snapshot = await UsageService.get_stats(db, user_id)
    quota_rejections_total.labels(stage=stage).inc()
    log_quota_exceeded(
        logger,
        user_id=user_id,
        used=snapshot.transformations_used,
        maximum=snapshot.max_transformations,
        stage=stage,
    )
    return QuotaExceeded(
        snapshot.transformations_used,
        snapshot.max_transformations,
        usage=snapshot.model_dump(by_alias=True, mode="json"),
    )


async def _generate(
    provider: ImageProvider,
    upload: StoredUpload,
    style: Style,
    user_id: str,
) -> GeneratedImage:
    """
    Call the provider within the configured timeout.

    Raises:
        ProviderTimeout: If the provider did not answer in time
        TransformationFailed: If the provider failed or returned no image
    """
    image = await upload.read()
    start_time = time.time()
    image_provider_requests_total.labels(provider=provider.name, operation="transform_image").inc()

    try:
        result = await asyncio.wait_for(
            provider.transform(image, upload.mime_type, style.prompt),
            timeout=settings.transform_timeout_seconds,
        )
    except asyncio.TimeoutError:
        duration_ms = (time.time() - start_time) * 1000
        image_provider_failures_total.labels(
            provider=provider.name, operation="transform_image", reason="timeout"
        ).inc()
        log_provider_failure(
            logger, provider.name, "transform_image", "timeout",
            duration_ms=duration_ms, user_id=user_id,
        )
        raise ProviderTimeout(
            f"Image generation timed out after {settings.transform_timeout_seconds:g} seconds"
        )
    except TransformationFailed as e:
        image_provider_failures_total.labels(
            provider=provider.name, operation="transform_image", reason="no_image"
        ).inc()
        log_provider_failure(logger, provider.name, "transform_image", e.message, user_id=user_id)
        raise
    except Exception as e:
        image_provider_failures_total.labels(
            provider=provider.name, operation="transform_image", reason="error"
        ).inc()
        log_provider_failure(
            logger, provider.name, "transform_image", str(e),
            user_id=user_id, include_traceback=True,
        )
        raise TransformationFailed("Error transforming image") from e

    if result is None or not result.data:
        raise TransformationFailed("No image data returned from provider")

    duration = time.time() - start_time
    image_provider_latency_seconds.labels(
        provider=provider.name, operation="transform_image"
    ).observe(duration)
    log_provider_request(
        logger, provider.name, "transform_image",
        duration_ms=duration * 1000, user_id=user_id, style=style.value,
    )
    return result


@router.post("/transform")
async def transform_image(
    image: Optional[UploadFile] = File(None),
    style: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    provider: ImageProvider = Depends(get_image_provider),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Transform an uploaded portrait into the selected style.
    Requires valid Firebase JWT token.
    """
    logger.info(
        f"Transform request from user: {current_user.email} ({current_user.uid})",
        extra={"event": "transform_requested", "user_id": current_user.uid},
    )

    upload = validate_image_upload(image)
    selected = Style.from_name(style)
    if selected is None:
        raise ValidationError(f"Invalid style: {style}", code="INVALID_STYLE")

    async with stored_upload(upload) as stored:
        if not await UsageService.can_transform(db, current_user.uid):
            raise await _quota_exceeded(db, current_user.uid, stage="gate")

        generated = await _generate(provider, stored, selected, current_user.uid)

        try:
            usage = await UsageService.record_transformation(
                db, current_user.uid, UsageService.TRANSFORMATION_KIND
            )
        except QuotaExceeded:
            # Another request consumed the last transformation meanwhile
            raise await _quota_exceeded(db, current_user.uid, stage="record")

    transformations_recorded_total.labels(style=selected.value).inc()

    return Response(
        content=generated.data,
        media_type=generated.mime_type,
        headers={USAGE_HEADER: usage.to_header()},
    )
