from transcoder.main import app

app(prog_name="transcoder")
