"""Mock data generator — concrete valid, invalid and edge values for schemas.

Realistic values come from Faker. Both Faker and the internal RNG are seeded
from the same seed, so a seeded generator repeats itself exactly.
"""

import base64
import math
import random
import re
import uuid

from faker import Faker

from api_contract_gen.analysis.schema import ResolvedSchema, SchemaAnalyzer, SchemaContext, get_boundary_values

VARIATIONS = ("valid", "invalid", "edge", "boundary")
OPTIONAL_MODES = ("all", "none", "documented")

INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"
ZERO_UUID = "00000000-0000-0000-0000-000000000000"

DOMAIN_DATA = {
    "currencies": ["USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "INR", "BRL"],
    "amounts": [99.99, 199.50, 1299.00, 49.95, 2499.99, 19.99, 599.00, 999.99],
    "timezones": ["UTC", "EST", "PST", "GMT", "CET", "JST", "IST", "AEST"],
    "titles": ["Mr.", "Ms.", "Mrs.", "Dr.", "Prof."],
    "coordinates": [(40.7128, -74.0060), (51.5074, -0.1278), (35.6762, 139.6503)],
    "protocols": ["HTTP", "HTTPS", "FTP", "SFTP", "SSH", "TCP", "UDP"],
    "statuses": ["active", "inactive", "pending"],
    "status_codes": [200, 201, 400, 401, 403, 404, 422, 500, 502, 503],
    "departments": ["Engineering", "Marketing", "Sales", "Human Resources", "Finance", "Operations"],
    "roles": ["Manager", "Director", "Engineer", "Analyst", "Specialist", "Coordinator"],
    "industries": ["Technology", "Healthcare", "Finance", "Education", "Retail", "Manufacturing"],
}

INVALID_FORMAT_VALUES = {
    "email": "invalid-email",
    "uuid": "not-a-uuid",
    "uri": "not-a-uri",
    "url": "not-a-url",
    "date": "not-a-date",
    "date-time": "not-a-datetime",
    "time": "25:61:61",
    "ipv4": "999.999.999.999",
    "ipv6": "not-an-ipv6",
    "hostname": "invalid..hostname",
    "byte": "!!not-base64!!",
}

EDGE_FORMAT_VALUES = {
    "email": "a@b.co",
    "uuid": ZERO_UUID,
    "uri": "https://a.co",
    "date": "1970-01-01",
    "date-time": "1970-01-01T00:00:00Z",
    "time": "00:00:00",
    "ipv4": "0.0.0.0",
    "ipv6": "0:0:0:0:0:0:0:1",
    "hostname": "a.co",
    "password": "Aa1!aaaa",
    "byte": "",
}

ID_NAME = re.compile(r"(^id$|_id$|[a-z]Id$|uuid)")


class MockDataGenerator:
    """Generates values for a schema in one of four variations."""

    def __init__(self, analyzer: SchemaAnalyzer | None = None, seed: int | None = None, locale: str = "en_US"):
        self.analyzer = analyzer or SchemaAnalyzer()
        self.rng = random.Random(seed)
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    def generate_realistic_data(self, field_name: str, schema, variation: str = "valid",
                                optional_fields: str = "all", request: bool = False):
        """Generate a value for a raw schema.

        Precedence: enum, then example (valid only), then field-name
        heuristics, then format, then domain hints, then the plain type.
        With request=True readOnly properties are left out of objects.
        """
        if variation not in VARIATIONS:
            raise ValueError(f"variation must be one of {VARIATIONS}")
        if optional_fields not in OPTIONAL_MODES:
            raise ValueError(f"optional_fields must be one of {OPTIONAL_MODES}")
        resolved = self.analyzer.analyze_schema(schema, field_name, SchemaContext(is_required=True))
        return self.generate_from_resolved(resolved, variation, optional_fields, request)

    def generate_from_resolved(self, resolved: ResolvedSchema, variation: str = "valid",
                               optional_fields: str = "all", request: bool = False):
        c = resolved.constraints

        if variation == "boundary":
            values = get_boundary_values(c)
            if values:
                if c["type"] == "array":
                    return self._array_of_size(resolved, self.rng.choice(values), optional_fields, request)
                return self.rng.choice(values)
            variation = "edge"

        if c.get("enum"):
            if variation == "invalid":
                return INVALID_ENUM_VALUE
            return self.rng.choice(c["enum"])

        if variation == "valid" and "example" in c:
            return c["example"]

        name = resolved.name.lower()
        schema_type = c["type"]
        if schema_type == "string":
            return self._string(resolved, name, variation)
        if schema_type in ("number", "integer"):
            return self._number(c, name, variation)
        if schema_type == "boolean":
            if variation == "invalid":
                return "not_a_boolean"
            return self.rng.random() > 0.5
        if schema_type == "array":
            return self._array(resolved, variation, optional_fields, request)
        if schema_type == "object":
            return self._object(resolved, variation, optional_fields, request)
        return None

    # -- strings --------------------------------------------------------------

    def _string(self, resolved: ResolvedSchema, name: str, variation: str):
        c = resolved.constraints
        min_length = c.get("minLength") or 0
        max_length = c.get("maxLength")

        value = self._string_by_name(name, c, variation, resolved.name)
        if value is None and c.get("format"):
            value = self.generate_by_format(c["format"], variation)
        if value is None and variation == "valid":
            value = self._string_by_domain(resolved, name)
        if value is not None:
            return self._fit_length(value, c) if variation == "valid" else value

        if variation == "invalid":
            if min_length > 0:
                return ""
            if max_length is not None:
                return "A" * (max_length + 1)
            if c.get("pattern"):
                return "INVALID_PATTERN_MATCH"
            return 123
        if variation == "edge":
            if min_length > 0:
                return "A" * min_length
            if max_length is not None:
                return "A" * min(max_length, 50)
            return "A"

        limit = max_length if max_length is not None else 60
        text = self.faker.sentence(nb_words=self.rng.randint(2, 6)).rstrip(".")
        return self._fit_length(text[:limit], c)

    def _string_by_name(self, name: str, c: dict, variation: str, raw_name: str = ""):
        min_length = c.get("minLength") or 0

        if "email" in name:
            return {"invalid": "invalid-email", "edge": "a@b.co"}.get(variation) or self.faker.email()
        if "phone" in name:
            return {"invalid": "123", "edge": "+1234567890"}.get(variation) or (
                f"+1-{self.rng.randint(100, 999)}-{self.rng.randint(100, 999)}-{self.rng.randint(1000, 9999)}"
            )
        if "url" in name or "website" in name:
            return {"invalid": "not-a-url", "edge": "https://a.co"}.get(variation) or f"https://www.{self.faker.domain_name()}"
        if ID_NAME.search(raw_name or name) or "uuid" in name:
            return {"invalid": "not-a-uuid", "edge": ZERO_UUID}.get(variation) or self.uuid4()
        if "name" in name:
            if variation == "invalid":
                return "" if min_length > 0 else None
            if variation == "edge":
                return "A" * max(min_length, 1)
            if "first" in name:
                return self.faker.first_name()
            if "last" in name:
                return self.faker.last_name()
            if "company" in name:
                return self.faker.company()
            if "user" in name:
                return self.faker.user_name()
            return self.faker.name()
        if variation != "valid":
            if "date" in name:
                return "not-a-date" if variation == "invalid" else "1970-01-01"
            return None
        if "city" in name:
            return self.faker.city()
        if "country" in name:
            return self.faker.country_code() if "code" in name else self.faker.country()
        if "date" in name:
            return self.faker.date_between(start_date="-1y", end_date="today").isoformat()
        return None

    def generate_by_format(self, fmt: str, variation: str = "valid"):
        """Value for a string format, or None for formats without a generator."""
        if variation == "invalid":
            return INVALID_FORMAT_VALUES.get(fmt)
        if variation == "edge":
            return EDGE_FORMAT_VALUES.get(fmt)

        if fmt == "date":
            return self.faker.date_between(start_date="-1y", end_date="today").isoformat()
        if fmt == "date-time":
            return self.faker.date_time_between(start_date="-1y", end_date="now").strftime("%Y-%m-%dT%H:%M:%SZ")
        if fmt == "time":
            return self.faker.time()
        if fmt in ("email", "idn-email"):
            return self.faker.email()
        if fmt == "uuid":
            return self.uuid4()
        if fmt in ("uri", "url", "uri-reference", "iri"):
            return self.faker.url()
        if fmt in ("hostname", "idn-hostname"):
            return self.faker.domain_name()
        if fmt == "ipv4":
            return self.faker.ipv4()
        if fmt == "ipv6":
            return self.faker.ipv6()
        if fmt == "password":
            return "SecurePass123!"
        if fmt == "byte":
            return base64.b64encode(self.faker.word().encode()).decode()
        if fmt == "phone":
            return self.faker.numerify("+1-###-###-####")
        return None

    def _string_by_domain(self, resolved: ResolvedSchema, name: str):
        hints = resolved.context.domain_hints
        if not hints:
            return None
        hint = hints[0]

        if hint.type == "financial":
            if hint.specific_type == "currency" or "currency" in name:
                return self.rng.choice(DOMAIN_DATA["currencies"])
            return f"{self.rng.choice(DOMAIN_DATA['amounts']):.2f}"
        if hint.type == "temporal":
            if "zone" in name:
                return self.rng.choice(DOMAIN_DATA["timezones"])
            return self.generate_by_format("date-time")
        if hint.type == "personal":
            if "title" in name:
                return self.rng.choice(DOMAIN_DATA["titles"])
            if "bio" in name or "profile" in name:
                return self.faker.sentence(nb_words=10)
            if "address" in name:
                return self.faker.street_address()
            return None
        if hint.type == "geographic":
            if "zip" in name or "postal" in name:
                return self.faker.postcode()
            if "state" in name or "province" in name or "region" in name:
                return self.faker.state()
            return self.faker.city()
        if hint.type == "technical":
            if "status" in name:
                return self.rng.choice(DOMAIN_DATA["statuses"])
            if "version" in name:
                return f"{self.rng.randint(1, 5)}.{self.rng.randint(0, 9)}.{self.rng.randint(0, 9)}"
            if "protocol" in name:
                return self.rng.choice(DOMAIN_DATA["protocols"])
            if any(k in name for k in ("token", "key", "secret", "hash")):
                return self.faker.sha256()
            return None
        if hint.type == "business":
            if "department" in name:
                return self.rng.choice(DOMAIN_DATA["departments"])
            if "role" in name:
                return self.rng.choice(DOMAIN_DATA["roles"])
            if "industry" in name:
                return self.rng.choice(DOMAIN_DATA["industries"])
            if "company" in name or "organization" in name or "brand" in name:
                return self.faker.company()
            return None
        return None

    def _fit_length(self, value, c: dict):
        if not isinstance(value, str):
            return value
        min_length = c.get("minLength") or 0
        max_length = c.get("maxLength")
        if len(value) < min_length:
            value = value + "a" * (min_length - len(value))
        if max_length is not None and len(value) > max_length:
            value = value[:max_length]
        return value

    # -- numbers --------------------------------------------------------------

    def _number(self, c: dict, name: str, variation: str):
        is_integer = c["type"] == "integer"
        low = c.get("minimum")
        high = c.get("maximum")

        if variation == "invalid":
            return float("nan")

        minimum = low if low is not None else 0
        maximum = high if high is not None else 1000
        if c.get("exclusiveMinimum"):
            minimum = minimum + (1 if is_integer else 0.01)
        if c.get("exclusiveMaximum"):
            maximum = maximum - (1 if is_integer else 0.01)
        if maximum < minimum:
            maximum = minimum

        if variation == "edge":
            return self.rng.choice([minimum, maximum])

        if c.get("multipleOf"):
            step = c["multipleOf"]
            first = math.ceil(minimum / step)
            last = max(first, math.floor(maximum / step))
            value = self.rng.randint(first, last) * step
            return int(value) if is_integer else round(value, 10)

        lo, hi = self._heuristic_range(name, is_integer)
        if lo is not None:
            # keep the heuristic inside the declared bounds when they overlap
            lo, hi = max(lo, minimum), min(hi, maximum)
            if lo > hi:
                lo, hi = minimum, maximum
        else:
            lo, hi = minimum, maximum

        if is_integer:
            return self.rng.randint(math.ceil(lo), math.floor(hi)) if math.ceil(lo) <= math.floor(hi) else int(lo)
        places = 1 if ("rating" in name or "score" in name) else 2
        return round(self.rng.uniform(lo, hi), places)

    def _heuristic_range(self, name: str, is_integer: bool) -> tuple:
        if "age" in name:
            return 18, 97
        if "price" in name or "cost" in name or "amount" in name:
            return 1, 1000
        if "count" in name or "quantity" in name:
            return 1, 100
        if "rating" in name or "score" in name:
            return (1, 5) if is_integer else (1.0, 5.0)
        if "latitude" in name:
            return -90, 90
        if "longitude" in name:
            return -180, 180
        return None, None

    # -- arrays and objects ---------------------------------------------------

    def _array(self, resolved: ResolvedSchema, variation: str, optional_fields: str, request: bool):
        c = resolved.constraints
        if variation == "invalid":
            return "not_an_array"

        min_items = c.get("minItems") or 0
        max_items = c.get("maxItems")
        if variation == "edge":
            if min_items == 0 and self.rng.random() > 0.5:
                return []
            size = min_items if min_items else 1
            return self._array_of_size(resolved, size, optional_fields, request, "edge")

        upper = max_items if max_items is not None else max(min_items, 1) + 2
        size = self.rng.randint(max(min_items, 1 if upper >= 1 else 0), max(upper, min_items))
        return self._array_of_size(resolved, size, optional_fields, request)

    def _array_of_size(self, resolved: ResolvedSchema, size: int, optional_fields: str, request: bool, variation: str = "valid") -> list:
        items = self.analyzer.analyze_items(resolved)
        if items is None:
            return [self.faker.word() for _ in range(size)]
        values = []
        for _ in range(size):
            value = self.generate_from_resolved(items, variation, optional_fields, request)
            if resolved.constraints.get("uniqueItems") and value in values:
                value = self.generate_from_resolved(items, variation, optional_fields, request)
            values.append(value)
        return values

    def _object(self, resolved: ResolvedSchema, variation: str, optional_fields: str, request: bool):
        if variation == "invalid":
            return "not_an_object"

        result = {}
        for child in self.analyzer.analyze_properties(resolved):
            c = child.constraints
            if request and c.get("readOnly"):
                continue
            if not request and c.get("writeOnly"):
                continue
            if not child.is_required:
                if variation == "edge" and self.rng.random() > 0.5:
                    continue
                if optional_fields == "none":
                    continue
                if optional_fields == "documented" and "example" not in c and "default" not in c:
                    continue
            result[child.name] = self.generate_from_resolved(child, variation, optional_fields, request)
        return result

    def uuid4(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))
