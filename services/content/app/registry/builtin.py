from app.registry.schemas import FieldSchema, ModuleSchema

BUILTIN_MODULES: tuple[ModuleSchema, ...] = (
    ModuleSchema(
        type="text-block",
        name="Text block",
        field_schema=[
            FieldSchema(slug="title", type="text"),
            FieldSchema(slug="text", type="richtext"),
        ],
        default_props={"title": "", "text": ""},
    ),
    ModuleSchema(
        type="hero",
        name="Hero",
        field_schema=[
            FieldSchema(slug="heading", type="text"),
            FieldSchema(slug="subheading", type="richtext"),
            FieldSchema(slug="image", type="media"),
            FieldSchema(
                slug="cta",
                type="object",
                fields=[
                    FieldSchema(slug="label", type="text"),
                    FieldSchema(slug="url", type="link"),
                ],
            ),
        ],
        default_props={"heading": "", "subheading": ""},
    ),
    ModuleSchema(
        type="cta",
        name="Call to action",
        field_schema=[
            FieldSchema(slug="heading", type="text"),
            FieldSchema(slug="body", type="richtext"),
            FieldSchema(slug="color", type="select"),
            FieldSchema(slug="url", type="link"),
        ],
        default_props={"heading": "", "color": "blue"},
    ),
    ModuleSchema(
        type="faq",
        name="FAQ",
        field_schema=[
            FieldSchema(slug="title", type="text"),
            FieldSchema(
                slug="items",
                type="repeater",
                item=FieldSchema(
                    slug="item",
                    type="object",
                    fields=[
                        FieldSchema(slug="question", type="text"),
                        FieldSchema(slug="answer", type="richtext"),
                    ],
                ),
            ),
        ],
        default_props={"title": "", "items": []},
    ),
    ModuleSchema(
        type="feature-grid",
        name="Feature grid",
        field_schema=[
            FieldSchema(slug="title", type="text"),
            FieldSchema(
                slug="features",
                type="repeater",
                item=FieldSchema(
                    slug="feature",
                    type="object",
                    fields=[
                        FieldSchema(slug="icon", type="text"),
                        FieldSchema(slug="title", type="text"),
                        FieldSchema(slug="body", type="richtext"),
                    ],
                ),
            ),
        ],
        default_props={"title": "", "features": []},
    ),
)
