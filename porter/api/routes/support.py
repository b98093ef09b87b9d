"""Package feature support endpoints."""

from fastapi import APIRouter, HTTPException

from ...exceptions import UnknownPackage
from ...registry import feature_list, list_packages
from ..models import FeatureListResponse, PackageListResponse

router = APIRouter()


@router.get("/{kind}", response_model=PackageListResponse)
async def list_support(kind: str):
    """List registered sources or targets."""
    try:
        packages = list_packages(kind)
    except UnknownPackage as e:
        raise HTTPException(status_code=404, detail=str(e))
    return PackageListResponse(packages=packages, total=len(packages))


@router.get("/{kind}/{name}", response_model=FeatureListResponse)
async def get_support(kind: str, name: str):
    """Feature support table for one package."""
    try:
        features = feature_list(kind, name)
    except UnknownPackage as e:
        raise HTTPException(status_code=404, detail=str(e))
    return FeatureListResponse(kind=kind, name=name, features=features)
