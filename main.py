from dotenv import load_dotenv

load_dotenv()

from carelink import create_app

app = create_app()

def main():
    app.run(host="0.0.0.0", port=5000)

if __name__ == "__main__":
    main()
