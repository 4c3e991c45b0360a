"""守护进程在GET请求时返回的网页表单。"""

PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Pok'em</title>
<script>
  async function submitForm(event) {
    // Prevent the default form submission
    event.preventDefault();

    // Reference to feedback display elements
    const successMessage = document.getElementById('success-message');
    const errorMessage = document.getElementById('error-message');

    // Initially hide both messages
    successMessage.style.display = 'none';
    errorMessage.style.display = 'none';

    // Get the room name and message from the form inputs
    var room = document.getElementById('room').value;
    var message = document.getElementById('message').value;

    // Check if room and message are provided
    if (!room || !message) {
      errorMessage.innerHTML = 'Please fill in both fields.';
      errorMessage.style.display = 'block';
      return;
    }

    var actionURL = '/' + encodeURIComponent(room);

    try {
      const response = await fetch(actionURL, {
        method: 'POST',
        headers: {
          'Content-Type': 'text/plain',
        },
        body: message
      });

      if (response.ok) {
        // On success, display the success message
        successMessage.innerHTML = "Message sent successfully!";
        successMessage.style.display = 'block';
      } else {
        // On failure (non-2xx status), display an error message
        errorMessage.innerHTML = "Failed to send message. Status: " + response.status;
        errorMessage.style.display = 'block';
      }
    } catch (error) {
      // On error (network issue, etc.), display an error message
      errorMessage.innerHTML = "Error sending message: " + error.message;
      errorMessage.style.display = 'block';
    }
  }

  // Decode the URL and use it to set the Room Name
  function setInitialRoomValue() {
    const url = window.location.href;
    const roomField = document.getElementById('room');
    const roomValue = url.substring(url.lastIndexOf('/') + 1);

    roomField.value = decodeURIComponent(roomValue);
  }

  // Call the function to set the initial room value when the page loads
  window.onload = setInitialRoomValue;
</script>
</head>
<body>

<h2>Pok'em!</h2>
<h3>Provide the Room and Message and we'll Poke Them for you.</h3>

<form onsubmit="submitForm(event);">
  <label for="room">Room:</label><br>
  <input type="text" id="room" size="30" maxlength="256"><br>
  <label for="message">Message:</label><br>
  <textarea id="message" rows="4" cols="50" maxlength="1024"></textarea><br><br>
  <input type="submit" value="Submit">
</form>

<!-- Feedback messages -->
<div id="success-message" style="color: green; display: none;"></div>
<div id="error-message" style="color: red; display: none;"></div>

</body>
</html>
"""
