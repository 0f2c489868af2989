#!/usr/bin/env python3
"""Operator script: verify OSRM connectivity and fetch one route polyline."""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from ridepool.config import settings
from ridepool.models.domain import Coordinate, Polyline
from ridepool.services.routing.osrm_client import check_health
from ridepool.services.routing.polyline import PolylineProvider


def main():
    print("=" * 60)
    print("OSRM Connection Test")
    print("=" * 60)
    print()

    print("1. Checking OSRM configuration...")
    if not settings.osrm_base_url:
        print("   [ERROR] OSRM base URL is not configured")
        print("   Please set RIDEPOOL_OSRM_BASE_URL in your .env file")
        return 1

    print(f"   [OK] OSRM Base URL: {settings.osrm_base_url}")
    print(f"   [OK] OSRM Profile: {settings.osrm_profile}")
    print()

    print("2. Testing OSRM health check...")
    try:
        is_healthy = check_health()
        if is_healthy:
            print("   [OK] OSRM service is healthy and accessible!")
        else:
            print("   [ERROR] OSRM service is not responding")
            return 1
    except Exception as e:
        print(f"   [ERROR] Error during health check: {e}")
        return 1
    print()

    print("3. Fetching a route polyline...")
    origin = Coordinate(52.517037, 13.388860)  # Berlin, Germany
    destination = Coordinate(52.496891, 13.385983)  # Berlin, Germany
    polyline = PolylineProvider().get_route_polyline(origin, destination)
    if polyline == Polyline.fallback(origin, destination):
        print("   [ERROR] Routing failed, got the two-point fallback line")
        return 1
    print(f"   [OK] Received {len(polyline)} points")
    print(f"   [OK] First point: {polyline.first.lat:.6f}, {polyline.first.lng:.6f}")
    print(f"   [OK] Last point: {polyline.last.lat:.6f}, {polyline.last.lng:.6f}")
    print()

    print("=" * 60)
    print("[SUCCESS] OSRM is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
