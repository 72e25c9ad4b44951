"""Admin AI Route — draft a feature description from a post title."""

from fastapi import APIRouter, Depends

from ideabox.api.dependencies import get_current_admin, get_description_generator
from ideabox.schemas.description import DescriptionRequest, DescriptionResponse
from ideabox.services.feature_description import FeatureDescriptionGenerator

router = APIRouter(
    prefix="/admin/api", tags=["descriptions"],
    dependencies=[Depends(get_current_admin)],
)


@router.post("/generate-feature-description", response_model=DescriptionResponse)
async def generate_feature_description(
    body: DescriptionRequest,
    generator: FeatureDescriptionGenerator = Depends(get_description_generator),
):
    description = await generator.generate(body.title)
    return DescriptionResponse(description=description)
