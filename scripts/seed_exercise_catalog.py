#!/usr/bin/env python3
"""
Seed the default exercise catalog (knee, ankle and general fallback buckets).

Buckets are upserted by slug and exercises by (bucket_id, name), so the
script can be re-run safely.

Usage:
    python scripts/seed_exercise_catalog.py [--dry-run]

Options:
    --dry-run    Print what would be written without touching the database
"""
import argparse
import logging
import sys
from typing import Optional

from supabase import create_client

from backend.settings import get_settings
from infrastructure.db import SupabaseCatalogRepository

logger = logging.getLogger(__name__)


BUCKETS = [
    {"area": "knee", "slug": "mobility_knee", "label": "Knee Mobility", "sort_order": 1},
    {"area": "knee", "slug": "isometric_knee", "label": "Isometric Knee Strengthening", "sort_order": 2},
    {"area": "knee", "slug": "activation_quads", "label": "Quadriceps Activation", "sort_order": 3},
    {"area": "knee", "slug": "light_strength_knee", "label": "Light Knee Strengthening", "sort_order": 4},
    {"area": "knee", "slug": "stability_lower", "label": "Lower Body Stability", "sort_order": 5},
    {"area": "ankle", "slug": "mobility_ankle", "label": "Ankle Mobility", "sort_order": 6},
    {"area": "ankle", "slug": "isometric_ankle", "label": "Isometric Ankle Strengthening", "sort_order": 7},
    # Fallback buckets used when nothing area-specific matches
    {"area": "general", "slug": "mobility_general", "label": "General Mobility", "sort_order": 98},
    {"area": "general", "slug": "isometric_general", "label": "General Isometric Strengthening", "sort_order": 99},
]


def _exercise(bucket, name, description, low, mod, safety, sort_order):
    return {
        "bucket": bucket,
        "name": name,
        "description": description,
        "dosage_low_json": low,
        "dosage_mod_json": mod,
        "safety_notes": safety,
        "sort_order": sort_order,
    }


EXERCISES = [
    _exercise(
        "mobility_knee", "Supine Knee Flexion",
        "Lying on your back, gently bend and straighten your knee",
        {"sets": 2, "reps": 10, "rest_seconds": 30, "notes": "Move slowly through available range"},
        {"sets": 3, "reps": 15, "rest_seconds": 30, "notes": "Aim for smooth, controlled movement"},
        "Stop if sharp pain occurs", 1,
    ),
    _exercise(
        "mobility_knee", "Heel Slides",
        "Slide your heel toward your buttock while lying down",
        {"sets": 2, "reps": 8, "rest_seconds": 30, "notes": "Use a towel under heel if helpful"},
        {"sets": 3, "reps": 12, "rest_seconds": 30, "notes": "Progress range as tolerated"},
        "Stay within comfortable range", 2,
    ),
    _exercise(
        "isometric_knee", "Quad Sets",
        "Tighten your thigh muscle while keeping leg straight",
        {"sets": 3, "hold_seconds": 5, "rest_seconds": 30, "notes": "Focus on muscle contraction"},
        {"sets": 4, "hold_seconds": 8, "rest_seconds": 30, "notes": "Maintain steady contraction"},
        "No pain should occur during hold", 1,
    ),
    _exercise(
        "isometric_knee", "Straight Leg Raise Hold",
        "Lift straight leg and hold just off the ground",
        {"sets": 2, "hold_seconds": 5, "rest_seconds": 45, "notes": "Keep knee locked straight"},
        {"sets": 3, "hold_seconds": 8, "rest_seconds": 45, "notes": "Increase hold time gradually"},
        "Stop if back arches or pain increases", 2,
    ),
    _exercise(
        "activation_quads", "Seated Knee Extension",
        "Sit in chair and straighten knee against gravity",
        {"sets": 2, "reps": 10, "rest_seconds": 45, "notes": "Control the lowering phase"},
        {"sets": 3, "reps": 12, "rest_seconds": 45, "notes": "Pause at top of movement"},
        "Avoid locking knee forcefully", 1,
    ),
    _exercise(
        "activation_quads", "Terminal Knee Extension",
        "Standing, straighten knee fully against resistance band",
        {"sets": 2, "reps": 12, "rest_seconds": 30, "notes": "Light resistance to start"},
        {"sets": 3, "reps": 15, "rest_seconds": 30, "notes": "Increase band resistance as able"},
        "Keep movement controlled", 2,
    ),
    _exercise(
        "light_strength_knee", "Mini Squats",
        "Shallow squats to 30-45 degrees knee bend",
        {"sets": 2, "reps": 8, "rest_seconds": 60, "notes": "Use chair for support if needed"},
        {"sets": 3, "reps": 12, "rest_seconds": 60, "notes": "Progress depth gradually"},
        "Stop before pain increases", 1,
    ),
    _exercise(
        "light_strength_knee", "Step-Ups",
        "Step up onto low platform (4-6 inches)",
        {"sets": 2, "reps": 8, "rest_seconds": 60, "notes": "Use railing for balance"},
        {"sets": 3, "reps": 10, "rest_seconds": 60, "notes": "Control descent carefully"},
        "Ensure stable surface", 2,
    ),
    _exercise(
        "stability_lower", "Single Leg Balance",
        "Stand on one leg maintaining balance",
        {"sets": 2, "hold_seconds": 10, "rest_seconds": 30, "notes": "Use wall for light touch support"},
        {"sets": 3, "hold_seconds": 20, "rest_seconds": 30, "notes": "Progress to no support"},
        "Practice near wall or stable surface", 1,
    ),
    _exercise(
        "stability_lower", "Tandem Stance",
        "Stand with one foot directly in front of the other",
        {"sets": 2, "hold_seconds": 15, "rest_seconds": 30, "notes": "Focus on steady balance"},
        {"sets": 3, "hold_seconds": 30, "rest_seconds": 30, "notes": "Close eyes for added challenge"},
        "Have support nearby", 2,
    ),
    _exercise(
        "mobility_ankle", "Ankle Pumps",
        "Point and flex your foot while seated or lying down",
        {"sets": 2, "reps": 15, "rest_seconds": 20, "notes": "Full range of motion"},
        {"sets": 3, "reps": 20, "rest_seconds": 20, "notes": "Add ankle circles after pumps"},
        "Should feel no pain", 1,
    ),
    _exercise(
        "mobility_ankle", "Calf Stretch",
        "Gentle standing or wall calf stretch",
        {"sets": 2, "hold_seconds": 20, "rest_seconds": 30, "notes": "Knee straight for gastrocnemius"},
        {"sets": 3, "hold_seconds": 30, "rest_seconds": 30, "notes": "Repeat with bent knee for soleus"},
        "Stretch should feel comfortable", 2,
    ),
    _exercise(
        "isometric_ankle", "Seated Calf Raise Hold",
        "Raise heels off ground while seated and hold",
        {"sets": 2, "hold_seconds": 10, "rest_seconds": 30, "notes": "Keep weight evenly distributed"},
        {"sets": 3, "hold_seconds": 15, "rest_seconds": 30, "notes": "Add light weight on knees if tolerated"},
        "No cramping should occur", 1,
    ),
    _exercise(
        "isometric_ankle", "Toe Raise Hold",
        "Lift toes while keeping heels on ground",
        {"sets": 2, "hold_seconds": 8, "rest_seconds": 30, "notes": "Focus on anterior tibialis engagement"},
        {"sets": 3, "hold_seconds": 12, "rest_seconds": 30, "notes": "Increase hold time gradually"},
        "Stop if shin pain occurs", 2,
    ),
    _exercise(
        "mobility_general", "Gentle Walking",
        "Light walking at comfortable pace",
        {"time_seconds": 300, "notes": "5 minutes, level surface"},
        {"time_seconds": 600, "notes": "10 minutes, can vary terrain slightly"},
        "Stay within pain-free range", 1,
    ),
    _exercise(
        "mobility_general", "Full Body Stretch",
        "Gentle stretches for major muscle groups",
        {"sets": 1, "reps": 5, "hold_seconds": 15, "notes": "Each major muscle group"},
        {"sets": 2, "reps": 5, "hold_seconds": 20, "notes": "Hold each stretch comfortably"},
        "Never force a stretch", 2,
    ),
    _exercise(
        "isometric_general", "Static Holds",
        "Gentle static holds in comfortable positions",
        {"sets": 2, "hold_seconds": 10, "rest_seconds": 30, "notes": "Wall sit or plank modifications"},
        {"sets": 3, "hold_seconds": 15, "rest_seconds": 30, "notes": "Progress hold time gradually"},
        "Maintain steady breathing", 1,
    ),
    _exercise(
        "isometric_general", "Breathing Exercises",
        "Diaphragmatic breathing with gentle core engagement",
        {"sets": 3, "reps": 5, "hold_seconds": 5, "notes": "Exhale with gentle abdominal contraction"},
        {"sets": 4, "reps": 8, "hold_seconds": 5, "notes": "Coordinate breathing with movement"},
        "Breathe naturally, no straining", 2,
    ),
]


def seed(repo: Optional[SupabaseCatalogRepository], dry_run: bool = False) -> None:
    """
    Upsert all buckets, then their exercises.

    Args:
        repo: Catalog repository to write to
        dry_run: If True, only print the planned writes
    """
    bucket_ids = {}
    for bucket in BUCKETS:
        if dry_run:
            print(f"  [dry-run] bucket {bucket['slug']} ({bucket['area']})")
            continue
        row = repo.upsert_bucket({**bucket, "is_active": True})
        bucket_ids[bucket["slug"]] = row["id"]

    for exercise in EXERCISES:
        data = {k: v for k, v in exercise.items() if k != "bucket"}
        if dry_run:
            print(f"  [dry-run] exercise {data['name']} -> {exercise['bucket']}")
            continue
        repo.upsert_exercise({**data, "bucket_id": bucket_ids[exercise["bucket"]], "is_active": True})

    print(f"Seeded {len(BUCKETS)} buckets and {len(EXERCISES)} exercises (knee, ankle, general)")


def main():
    parser = argparse.ArgumentParser(
        description="Seed the default rehab exercise catalog into Supabase"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview the catalog without writing to the database",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if args.dry_run:
        seed(repo=None, dry_run=True)
        return

    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        print("ERROR: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        sys.exit(1)

    client = create_client(settings.supabase_url, settings.supabase_key)
    seed(SupabaseCatalogRepository(client))


if __name__ == "__main__":
    main()
