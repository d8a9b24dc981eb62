from acknowledge.models.acknowledgement import (  # noqa: F401
    Acknowledgement,
    AcknowledgementStatus,
    Assignment,
    AssignmentPattern,
    ChangeType,
    Document,
)
