"""Static metadata describing ExamDesk."""

APP_NAME = "ExamDesk"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "ExamDesk turns PDF question papers into timed online exams. "
    "Upload papers or pick a GATE topic, review the draft, and let students "
    "take the exam with an NTA-style question palette."
)
