"""
Fake exercise catalog repository for testing.

Seeded with a small knee/ankle/general catalog mirroring the seeding
script, so shortlist rules have real buckets to draw from.
"""

from typing import Dict, List, Optional, Tuple


def _dosage(sets: int, reps: Optional[int] = None, hold: Optional[int] = None) -> Dict:
    dosage = {"sets": sets, "rest_seconds": 30}
    if reps is not None:
        dosage["reps"] = reps
    if hold is not None:
        dosage["hold_seconds"] = hold
    return dosage


# (slug, area, sort_order, [(name, low, mod)])
DEFAULT_CATALOG: List[Tuple[str, str, int, List[Tuple[str, Dict, Dict]]]] = [
    ("mobility_knee", "knee", 1, [
        ("Supine Knee Flexion", _dosage(2, reps=10), _dosage(3, reps=15)),
        ("Heel Slides", _dosage(2, reps=8), _dosage(3, reps=12)),
        ("Knee Circles", _dosage(1, reps=10), _dosage(2, reps=10)),
    ]),
    ("isometric_knee", "knee", 2, [
        ("Quad Sets", _dosage(3, hold=5), _dosage(4, hold=8)),
        ("Straight Leg Raise Hold", _dosage(2, hold=5), _dosage(3, hold=8)),
    ]),
    ("activation_quads", "knee", 3, [
        ("Seated Knee Extension", _dosage(2, reps=10), _dosage(3, reps=12)),
        ("Terminal Knee Extension", _dosage(2, reps=12), _dosage(3, reps=15)),
    ]),
    ("light_strength_knee", "knee", 4, [
        ("Mini Squats", _dosage(2, reps=8), _dosage(3, reps=12)),
        ("Step-Ups", _dosage(2, reps=8), _dosage(3, reps=10)),
    ]),
    ("stability_lower", "knee", 5, [
        ("Single Leg Balance", _dosage(2, hold=10), _dosage(3, hold=20)),
        ("Tandem Stance", _dosage(2, hold=15), _dosage(3, hold=30)),
    ]),
    ("mobility_ankle", "ankle", 6, [
        ("Ankle Pumps", _dosage(2, reps=15), _dosage(3, reps=20)),
        ("Calf Stretch", _dosage(2, hold=20), _dosage(3, hold=30)),
    ]),
    ("isometric_ankle", "ankle", 7, [
        ("Seated Calf Raise Hold", _dosage(2, hold=10), _dosage(3, hold=15)),
        ("Toe Raise Hold", _dosage(2, hold=8), _dosage(3, hold=12)),
    ]),
    ("mobility_general", "general", 98, [
        ("Gentle Walking", {"time_seconds": 300}, {"time_seconds": 600}),
        ("Full Body Stretch", _dosage(1, reps=5, hold=15), _dosage(2, reps=5, hold=20)),
    ]),
    ("isometric_general", "general", 99, [
        ("Static Holds", _dosage(2, hold=10), _dosage(3, hold=15)),
        ("Breathing Exercises", _dosage(3, reps=5, hold=5), _dosage(4, reps=8, hold=5)),
    ]),
]


def build_default_catalog() -> Tuple[List[Dict], List[Dict]]:
    """Bucket and exercise rows for the default test catalog."""
    buckets: List[Dict] = []
    exercises: List[Dict] = []
    exercise_id = 1
    for bucket_id, (slug, area, sort_order, items) in enumerate(DEFAULT_CATALOG, start=1):
        buckets.append({
            "id": bucket_id,
            "area": area,
            "slug": slug,
            "label": slug.replace("_", " ").title(),
            "is_active": True,
            "sort_order": sort_order,
        })
        for position, (name, low, mod) in enumerate(items, start=1):
            exercises.append({
                "id": exercise_id,
                "bucket_id": bucket_id,
                "name": name,
                "description": f"{name} description",
                "dosage_low_json": low,
                "dosage_mod_json": mod,
                "safety_notes": "Stop if sharp pain occurs",
                "is_active": True,
                "sort_order": position,
            })
            exercise_id += 1
    return buckets, exercises


class FakeCatalogRepository:
    """In-memory fake implementation of CatalogRepository."""

    def __init__(self, seed_default: bool = True):
        self._buckets: Dict[int, Dict] = {}
        self._exercises: Dict[int, Dict] = {}
        self.load_count = 0
        if seed_default:
            buckets, exercises = build_default_catalog()
            self.seed(buckets, exercises)

    # -------------------------------------------------------------------------
    # Test Helpers
    # -------------------------------------------------------------------------

    def seed(self, buckets: List[Dict], exercises: List[Dict]) -> None:
        for bucket in buckets:
            self._buckets[bucket["id"]] = dict(bucket)
        for exercise in exercises:
            self._exercises[exercise["id"]] = dict(exercise)

    def reset(self) -> None:
        self._buckets.clear()
        self._exercises.clear()

    def deactivate_bucket(self, slug: str) -> None:
        for bucket in self._buckets.values():
            if bucket["slug"] == slug:
                bucket["is_active"] = False

    # -------------------------------------------------------------------------
    # Repository Interface Implementation
    # -------------------------------------------------------------------------

    def get_buckets(self) -> List[Dict]:
        self.load_count += 1
        return sorted(self._buckets.values(), key=lambda b: b["sort_order"])

    def get_exercises(self) -> List[Dict]:
        return sorted(self._exercises.values(), key=lambda e: e["sort_order"])

    def upsert_bucket(self, data: Dict) -> Dict:
        for bucket in self._buckets.values():
            if bucket["slug"] == data["slug"]:
                bucket.update(data)
                return bucket
        bucket_id = max(self._buckets, default=0) + 1
        self._buckets[bucket_id] = {**data, "id": bucket_id}
        return self._buckets[bucket_id]

    def upsert_exercise(self, data: Dict) -> Dict:
        for exercise in self._exercises.values():
            if exercise["bucket_id"] == data["bucket_id"] and exercise["name"] == data["name"]:
                exercise.update(data)
                return exercise
        exercise_id = max(self._exercises, default=0) + 1
        self._exercises[exercise_id] = {**data, "id": exercise_id}
        return self._exercises[exercise_id]
