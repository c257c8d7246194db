from pydantic import BaseModel, ConfigDict, Field


class CourseCreate(BaseModel):
    course_code: str = Field(..., min_length=1, max_length=50)
    course_name: str = Field(..., min_length=1, max_length=255)
    college_id: int = Field(..., gt=0)
    credits: int = Field(3, gt=0)


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: int
    course_code: str
    course_name: str
    college_id: int
    credits: int
