# products_api/validation/schemas.py
from .engine import (
    INTEGER,
    NUMBER,
    STRING,
    FieldSpec,
    Rule,
    Schema,
    at_least,
    max_length,
    maximum,
    min_length,
    minimum,
    one_of,
    pattern,
    positive,
    precision,
)

SORT_FIELDS = ("name", "price", "category", "createdAt")
SORT_ORDERS = ("asc", "desc")
MAX_PRICE = 999999.99


def _name_field(required: bool) -> FieldSpec:
    return FieldSpec(
        STRING,
        required=required,
        trim=True,
        rules=[
            min_length(1, "Name must be at least 1 character long"),
            max_length(255, "Name must not exceed 255 characters"),
        ],
        messages={
            "base": "Name must be a string",
            "empty": "Name cannot be empty",
            "required": "Name is required",
        },
    )


def _description_field() -> FieldSpec:
    return FieldSpec(
        STRING,
        trim=True,
        allow_empty=True,
        rules=[max_length(1000, "Description must not exceed 1000 characters")],
        messages={"base": "Description must be a string"},
    )


def _price_field(required: bool) -> FieldSpec:
    return FieldSpec(
        NUMBER,
        required=required,
        rules=[
            positive("Price must be greater than 0"),
            precision(2, "Price can have at most 2 decimal places"),
            maximum(MAX_PRICE, "Price must not exceed 999,999.99"),
        ],
        messages={
            "base": "Price must be a number",
            "required": "Price is required",
        },
    )


def _category_field(required: bool) -> FieldSpec:
    return FieldSpec(
        STRING,
        required=required,
        trim=True,
        rules=[
            min_length(1, "Category must be at least 1 character long"),
            max_length(100, "Category must not exceed 100 characters"),
        ],
        messages={
            "base": "Category must be a string",
            "empty": "Category cannot be empty",
            "required": "Category is required",
        },
    )


create_product_schema = Schema(
    fields={
        "name": _name_field(required=True),
        "description": _description_field(),
        "price": _price_field(required=True),
        "category": _category_field(required=True),
    },
    object_message="Request body must be a JSON object",
)

update_product_schema = Schema(
    fields={
        "name": _name_field(required=False),
        "description": _description_field(),
        "price": _price_field(required=False),
        "category": _category_field(required=False),
    },
    rules=[Rule(lambda provided, _: len(provided) >= 1, "At least one field must be provided for update")],
    object_message="Request body must be a JSON object",
)

product_id_schema = Schema(
    fields={
        "id": FieldSpec(
            INTEGER,
            required=True,
            rules=[positive("Product ID must be greater than 0")],
            messages={
                "base": "Product ID must be a number",
                "integer": "Product ID must be an integer",
                "required": "Product ID is required",
            },
        ),
    },
)

product_query_schema = Schema(
    fields={
        "pageNumber": FieldSpec(
            INTEGER,
            default=1,
            rules=[minimum(1, "Page number must be at least 1")],
            messages={
                "base": "Page number must be a number",
                "integer": "Page number must be an integer",
            },
        ),
        "pageSize": FieldSpec(
            INTEGER,
            default=10,
            rules=[
                minimum(1, "Page size must be at least 1"),
                maximum(100, "Page size must not exceed 100"),
            ],
            messages={
                "base": "Page size must be a number",
                "integer": "Page size must be an integer",
            },
        ),
        "category": FieldSpec(
            STRING,
            trim=True,
            rules=[max_length(100, "Category must not exceed 100 characters")],
            messages={"base": "Category must be a string", "empty": "Category cannot be empty"},
        ),
        "searchTerm": FieldSpec(
            STRING,
            trim=True,
            rules=[max_length(255, "Search term must not exceed 255 characters")],
            messages={"base": "Search term must be a string", "empty": "Search term cannot be empty"},
        ),
        "sortBy": FieldSpec(
            STRING,
            default="createdAt",
            rules=[one_of(SORT_FIELDS, "Sort by must be one of: name, price, category, createdAt")],
            messages={"base": "Sort by must be a string"},
        ),
        "sortOrder": FieldSpec(
            STRING,
            default="desc",
            rules=[one_of(SORT_ORDERS, "Sort order must be either asc or desc")],
            messages={"base": "Sort order must be a string"},
        ),
        "minPrice": FieldSpec(
            NUMBER,
            rules=[
                positive("Minimum price must be greater than 0"),
                precision(2, "Minimum price can have at most 2 decimal places"),
            ],
            messages={"base": "Minimum price must be a number"},
        ),
        "maxPrice": FieldSpec(
            NUMBER,
            rules=[
                positive("Maximum price must be greater than 0"),
                precision(2, "Maximum price can have at most 2 decimal places"),
                at_least("minPrice", "Maximum price must be greater than or equal to minimum price"),
            ],
            messages={"base": "Maximum price must be a number"},
        ),
    },
)

search_query_schema = Schema(
    fields={
        "q": FieldSpec(
            STRING,
            trim=True,
            allow_empty=True,
            rules=[max_length(255, "Search term must not exceed 255 characters")],
            messages={"base": "Search term must be a string"},
        ),
        "limit": FieldSpec(
            INTEGER,
            default=10,
            rules=[
                minimum(1, "Limit must be at least 1"),
                maximum(100, "Limit must not exceed 100"),
            ],
            messages={
                "base": "Limit must be a number",
                "integer": "Limit must be an integer",
            },
        ),
    },
)

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
PASSWORD_PATTERN = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]"

register_schema = Schema(
    fields={
        "username": FieldSpec(
            STRING,
            required=True,
            trim=True,
            rules=[
                min_length(3, "Username must be at least 3 characters long"),
                max_length(50, "Username must not exceed 50 characters"),
                pattern(USERNAME_PATTERN, "Username can only contain letters, numbers, and underscores"),
            ],
            messages={
                "base": "Username must be a string",
                "empty": "Username cannot be empty",
                "required": "Username is required",
            },
        ),
        "email": FieldSpec(
            STRING,
            required=True,
            trim=True,
            rules=[
                pattern(EMAIL_PATTERN, "Email must be a valid email address"),
                max_length(255, "Email must not exceed 255 characters"),
            ],
            messages={
                "base": "Email must be a string",
                "empty": "Email cannot be empty",
                "required": "Email is required",
            },
        ),
        "password": FieldSpec(
            STRING,
            required=True,
            rules=[
                min_length(8, "Password must be at least 8 characters long"),
                max_length(100, "Password must not exceed 100 characters"),
                pattern(
                    PASSWORD_PATTERN,
                    "Password must contain at least one lowercase letter, one uppercase letter, "
                    "one number, and one special character",
                ),
            ],
            messages={
                "base": "Password must be a string",
                "empty": "Password cannot be empty",
                "required": "Password is required",
            },
        ),
    },
    object_message="Request body must be a JSON object",
)

login_schema = Schema(
    fields={
        "username": FieldSpec(
            STRING,
            required=True,
            trim=True,
            messages={
                "base": "Username must be a string",
                "empty": "Username cannot be empty",
                "required": "Username is required",
            },
        ),
        "password": FieldSpec(
            STRING,
            required=True,
            messages={
                "base": "Password must be a string",
                "empty": "Password cannot be empty",
                "required": "Password is required",
            },
        ),
    },
    object_message="Request body must be a JSON object",
)
