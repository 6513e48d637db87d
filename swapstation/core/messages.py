"""User-facing (Vietnamese) message catalog shared by server and client."""
from __future__ import annotations

# Auth
INVALID_CREDENTIALS = "email hoặc mật khẩu không đúng"
EMAIL_IN_USE = "Email đã được sử dụng"
EMAIL_NOT_FOUND = "Email không tồn tại trong hệ thống"
INVALID_TOKEN = "Token không hợp lệ"
USER_NOT_FOUND = "Người dùng không tồn tại"
RESET_TOKEN_INVALID = "Token không hợp lệ hoặc đã hết hạn"
RESET_EMAIL_SENT = "Reset email sent if email exists"
PASSWORD_RESET_OK = "Mật khẩu đã được đặt lại thành công"
PASSWORD_CHANGED = "Đổi mật khẩu thành công"
WRONG_CURRENT_PASSWORD = "Mật khẩu hiện tại không đúng"
LOGOUT_OK = "Đăng xuất thành công"
SESSION_EXPIRED = "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại."
FORBIDDEN = "Bạn không có quyền truy cập tài nguyên này."
ACCOUNT_INACTIVE = "Tài khoản đã bị khóa"
REGISTER_SUCCESS = "Đăng ký tài khoản thành công"
LOGIN_SUCCESS = "Đăng nhập thành công"
PROFILE_UPDATED = "Cập nhật thông tin thành công"
VERIFICATION_SENT = "Mã xác thực đã được gửi đến email của bạn"
EMAIL_VERIFIED = "Xác thực email thành công"
EMAIL_NOT_VERIFIED = "Vui lòng xác thực email trước khi đăng ký"
OTP_FORMAT = "Mã OTP phải có 6 chữ số"
OTP_INVALID = "Mã OTP không đúng hoặc đã hết hạn. Vui lòng thử lại."
RESET_CREDENTIAL_REQUIRED = "Vui lòng nhập mã OTP hoặc dùng liên kết đặt lại mật khẩu"

# Vehicles
VEHICLE_CREATE_SUCCESS = "Thêm xe thành công!"
VEHICLE_UPDATE_SUCCESS = "Cập nhật xe thành công!"
VEHICLE_NOT_FOUND = "Không tìm thấy xe"
VIN_EXISTS = "Số VIN đã tồn tại trong hệ thống"
INVALID_MODEL = "Vui lòng chọn mẫu xe hợp lệ"
VEHICLE_HAS_BOOKINGS = "Không thể xóa xe đang có lịch đặt"


def vehicle_deleted(model_name: str, license_plate: str) -> str:
    return f"Đã xóa xe {model_name} ({license_plate}) thành công!"


# Stations
STATION_NOT_FOUND = "Không tìm thấy trạm"
STATION_HAS_BOOKINGS = "Không thể xóa trạm đang có lịch đặt"
STATION_CREATE_SUCCESS = "Tạo trạm thành công"
STATION_UPDATE_SUCCESS = "Cập nhật trạm thành công"
STATION_DELETE_SUCCESS = "Xóa trạm thành công"

# Bookings
MISSING_STATION_OR_VEHICLE = "Thiếu thông tin trạm hoặc xe"
MISSING_BOOKING_INFO = "Thiếu thông tin cần thiết để đặt lịch"
NOT_AVAILABLE = "Trạm không có pin loại này hoặc đã hết chỗ"
AVAILABILITY_FAILED = "Không thể kiểm tra tình trạng pin tại trạm"
BOOKING_CREATE_FAILED = "Không thể tạo lệnh đặt lịch"
BOOKING_NOT_FOUND = "Không tìm thấy booking. Vui lòng kiểm tra lại mã booking."
BOOKING_CANCELLED_OK = "Hủy lịch đặt thành công"
BOOKING_DELETED_OK = "Xóa lịch đặt thành công"
BOOKING_CREATED_OK = "Đặt lịch thành công"
TIME_IN_PAST = "Thời gian đã chọn đã qua, vui lòng chọn khung giờ khác"
BATTERY_QUANTITY_INVALID = "Số lượng pin không hợp lệ cho xe này"
BOOKING_NOT_CANCELLABLE = "Lịch đặt này không thể hủy"
BOOKING_ALREADY_USED = "Booking đã được sử dụng!"
BOOKING_WAS_CANCELLED = "Booking đã bị hủy!"
BOOKING_EXPIRED = "Booking đã hết hạn!"
ACTIVE_BOOKING_EXISTS = "Xe này đã có lịch đặt đang chờ"
BOOKING_SWAP_IN_PROGRESS = "Booking đang được đổi pin tại trạm"
TIME_ALREADY_LOCKED = "Không thể đổi thời gian sau khi đã đặt lịch"


def wrong_station(booked_station: str, current_station: str) -> str:
    return (
        f"Sai trạm! Booking này dành cho: {booked_station}. "
        f"Bạn đang ở: {current_station}."
    )


# Subscriptions
PLAN_NOT_FOUND = "Không tìm thấy gói dịch vụ"
SUBSCRIPTION_NOT_FOUND = "Không tìm thấy đăng ký gói"
SUBSCRIPTION_ALREADY_ACTIVE = "Xe này đã có gói dịch vụ đang hoạt động"
SUBSCRIPTION_NOT_PENDING = "Đăng ký này không ở trạng thái chờ thanh toán"
SUBSCRIPTION_CREATED = "Đăng ký gói thành công, vui lòng thanh toán"
PAYMENT_CONFIRMED = "Thanh toán thành công, gói dịch vụ đã được kích hoạt"
PLANS_FETCH_FAILED = "Không thể tải danh sách gói dịch vụ"

# Kiosk
KIOSK_NO_VEHICLES = "Bạn chưa có xe nào. Vui lòng thêm xe trong ứng dụng trước khi sử dụng dịch vụ."
KIOSK_MISSING_SELECTION = "Thiếu thông tin xe hoặc pin"
KIOSK_INVALID_STEP = "Thao tác không hợp lệ ở bước hiện tại"
KIOSK_NO_MANUAL_STEP = "Không có bước nào đang chờ xác nhận"
SWAP_FAILED = "Không thể hoàn tất đổi pin. Vui lòng liên hệ nhân viên trạm."

# Generic
GENERIC_ERROR = "Có lỗi xảy ra. Vui lòng thử lại."
NETWORK_ERROR = "Lỗi kết nối đến server"
INVALID_DATA = "Dữ liệu không hợp lệ"

# Wizard step titles
STEP_TITLES = {
    1: "Chọn thời gian",
    2: "Chọn số lượng pin",
    3: "Xác nhận đặt lịch",
    4: "Hoàn thành",
}
